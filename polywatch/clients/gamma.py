"""Gamma API client for Polymarket event data."""
from __future__ import annotations

import logging
from typing import List

from pydantic import ValidationError as PydanticValidationError

from polywatch.clients.fetch import ResilientFetchClient
from polywatch.config import GammaConfig
from polywatch.errors import ParseError
from polywatch.models import GammaEvent

log = logging.getLogger("polywatch.gamma")


class GammaClient:
    def __init__(self, fetch: ResilientFetchClient, config: GammaConfig | None = None):
        self.fetch = fetch
        self.config = config or GammaConfig()

    def get_recent_events(self, limit: int | None = None) -> List[GammaEvent]:
        """Active, non-archived, open events, newest first.

        Accepts either a bare JSON array or an ``{"events": [...]}`` body.
        """
        url = f"{self.config.base_url.rstrip('/')}/events"
        payload = self.fetch.get_json(
            url,
            params={
                "limit": limit or self.config.events_limit,
                "order": "createdAt",
                "ascending": "false",
                "active": "true",
                "archived": "false",
                "closed": "false",
            },
        )

        if isinstance(payload, dict) and isinstance(payload.get("events"), list):
            payload = payload["events"]
        if not isinstance(payload, list):
            raise ParseError(f"unexpected Gamma events shape from {url}", url=url)

        events: List[GammaEvent] = []
        for item in payload:
            try:
                events.append(GammaEvent.model_validate(item))
            except PydanticValidationError:
                log.debug(f"Skipping unparseable event: {item!r}")
        return events
