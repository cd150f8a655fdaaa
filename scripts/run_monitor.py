"""Entry point for the whale / tracked-wallet monitor.

Usage:
    python -m scripts.run_monitor                      # whale alerts only
    python -m scripts.run_monitor 0xabc...=whale 0xdef...
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from polywatch import Polywatch, load_config
from polywatch.monitor import PollingMonitor


def main():
    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    wallets = []
    for raw in sys.argv[1:]:
        address, _, label = raw.partition("=")
        wallets.append({"address": address, "label": label})

    with Polywatch(config) as app:
        PollingMonitor(app, wallets).run()


if __name__ == "__main__":
    main()
