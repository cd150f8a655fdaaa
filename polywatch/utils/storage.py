"""Export summaries to JSON or CSV."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, List, Union

import pandas as pd
from pydantic import BaseModel

logger = logging.getLogger(__name__)

Record = Union[BaseModel, dict]


def to_records(items: Iterable[Record]) -> List[dict]:
    records = []
    for item in items:
        if isinstance(item, BaseModel):
            records.append(item.model_dump(by_alias=True, mode="json"))
        else:
            records.append(dict(item))
    return records


def records_to_frame(items: Iterable[Record]) -> pd.DataFrame:
    """Flat DataFrame, one row per record, camelCase columns."""
    return pd.DataFrame(to_records(items))


def save_records(items: Union[Record, Iterable[Record]], path: Path) -> Path:
    """Write ``items`` to ``path``; format picked from the suffix (.json or .csv)."""
    path = Path(path)
    if isinstance(items, (BaseModel, dict)):
        items = [items]
    items = list(items)
    path.parent.mkdir(parents=True, exist_ok=True)

    suffix = path.suffix.lower()
    if suffix == ".csv":
        records_to_frame(items).to_csv(path, index=False)
    elif suffix == ".json":
        with open(path, "w") as f:
            json.dump(to_records(items), f, indent=2, ensure_ascii=False)
    else:
        raise ValueError(f"Unsupported export format: {path.suffix or '(none)'}")

    logger.info(f"Saved {len(items)} records to {path}")
    return path


def dumps(payload: Any) -> str:
    """JSON text for a model, list of models, or plain data."""
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(by_alias=True, mode="json")
    elif isinstance(payload, list):
        payload = to_records(payload)
    return json.dumps(payload, indent=2, ensure_ascii=False)
