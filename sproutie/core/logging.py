import logging

from sproutie.core.config import settings

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging() -> None:
    """Configure root logging once from LOG_LEVEL."""
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format=_FORMAT)
    # httpx logs every request URL at INFO, which would leak the Trefle token
    logging.getLogger("httpx").setLevel(logging.WARNING)
