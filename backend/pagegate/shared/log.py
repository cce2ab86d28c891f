# backend/pagegate/shared/log.py
import logging

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach one stream handler to the ``pagegate`` logger (idempotent)."""
    root = logging.getLogger("pagegate")
    root.setLevel(level.upper())
    if not any(getattr(h, "_pagegate", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._pagegate = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    return root
