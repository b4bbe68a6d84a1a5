"""Observability sink: channel-tagged, fire-and-forget log lines."""

from __future__ import annotations

import logging

ROOT_LOGGER = "events_radar"


def log(message: str, channel: str, level: int = logging.INFO) -> None:
    """Emit *message* on the ``events_radar.<channel>`` logger.

    Never raises: a broken handler must not interrupt ingestion.
    """
    try:
        logging.getLogger(f"{ROOT_LOGGER}.{channel}").log(level, message)
    except Exception:  # noqa: BLE001
        pass


def configure_logging(level: str | int = "INFO") -> None:
    logger = logging.getLogger(ROOT_LOGGER)
    if isinstance(level, str):
        # getLevelName returns "Level X" for names it does not know
        resolved = logging.getLevelName(level.strip().upper())
        level = resolved if isinstance(resolved, int) else logging.INFO
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
        logger.addHandler(handler)
