"""Process-level logging setup for the API server."""

from __future__ import annotations

import logging

from canopy.config import LoggingConfig

API_LOGGER_NAME = "canopy.api.access"
_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(config: LoggingConfig, *, api_log: bool = True) -> None:
    """Configure console logging and the always-on API access log file.

    The console honours ``config.level``. API access records, including
    the DEBUG response details, are always written to
    ``config.api_log_path`` regardless of that level.
    """
    level = getattr(logging, config.level.upper(), None)
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger("canopy")
    root.setLevel(logging.DEBUG)
    if not any(getattr(h, "_canopy_console", False) for h in root.handlers):
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(_FORMAT))
        console._canopy_console = True  # type: ignore[attr-defined]
        root.addHandler(console)
    for handler in root.handlers:
        if getattr(handler, "_canopy_console", False):
            handler.setLevel(level)

    if not api_log:
        return
    access = logging.getLogger(API_LOGGER_NAME)
    if any(getattr(h, "_canopy_api_file", False) for h in access.handlers):
        return
    try:
        path = config.resolved_api_log_path
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
    except OSError as e:
        root.warning("Cannot open API log %s: %s", config.api_log_path, e)
        return
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(_FORMAT))
    file_handler._canopy_api_file = True  # type: ignore[attr-defined]
    access.addHandler(file_handler)
