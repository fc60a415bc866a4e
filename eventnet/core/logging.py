"""Process-wide logging setup."""

from __future__ import annotations

import logging

from eventnet.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Install a single stream handler on the root logger."""

    logging.basicConfig(level=(level or settings.LOG_LEVEL).upper(), format=LOG_FORMAT, force=True)
    # Third-party clients are chatty at INFO.
    for noisy in ("httpx", "openai", "pinecone"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
