"""Shared logging helpers for OA Compass."""

from __future__ import annotations

import logging


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once with a terse CLI format.

    ``force=True`` reconfigures an already configured root logger, which the relay
    entry point and tests rely on.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    # httpx logs every request at INFO; keep API keys in query strings out of CLI output.
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
