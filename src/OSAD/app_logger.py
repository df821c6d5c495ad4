import logging, os
from typing import Optional, TextIO, Union

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# httpx and httpcore log every request at INFO; the fetcher already does.
NOISY_LOGGERS = ("httpx", "httpcore")


def _resolve_level(level: Union[int, str, None]) -> int:
    if isinstance(level, int):
        return level
    name = (level or os.getenv("OSAD_LOG_LEVEL") or "INFO").upper()
    return getattr(logging, name, logging.INFO)


def setup_logging(
    level: Union[int, str, None] = None,
    stream: Optional[TextIO] = None,
    quiet_http: bool = True,
) -> logging.Logger:
    """
    Configure the "OSAD" logger tree for an application embedding the data
    layer. Safe to call more than once: the handler is attached only once.
    """
    resolved = _resolve_level(level)
    logging.basicConfig(level=resolved, format=LOG_FORMAT)

    logger = logging.getLogger("OSAD")
    logger.setLevel(resolved)

    handler = next(
        (h for h in logger.handlers if getattr(h, "_osad_console", False)), None
    )
    if handler is None:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._osad_console = True
        logger.addHandler(handler)
    handler.setLevel(resolved)

    if quiet_http:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(max(resolved, logging.WARNING))

    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Child of the "OSAD" logger, e.g. get_logger("services.marks")."""
    base = logging.getLogger("OSAD")
    return base.getChild(name) if name else base
