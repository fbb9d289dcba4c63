"""
Logging setup. Plain lines by default; JSON lines when TREKHUB_LOG_JSON is set.
"""

import logging.config
from typing import Any, Dict, Optional

from trekhub.settings import get_settings

_FORMATTERS = {
    "standard": {
        "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    },
    "json": {
        "()": "pythonjsonlogger.json.JsonFormatter",
        "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
    },
}

_configured = False


def build_logging_config(level: str, json_logs: bool) -> Dict[str, Any]:
    """dictConfig for the service loggers. Only the selected formatter is built."""
    formatter = "json" if json_logs else "standard"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {formatter: _FORMATTERS[formatter]},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "trekhub": {"handlers": ["console"], "level": level, "propagate": False},
        },
    }


def configure_logging(level: Optional[str] = None, json_logs: Optional[bool] = None) -> None:
    """Apply logging config once per process. Arguments override settings."""
    global _configured
    if _configured:
        return
    settings = get_settings()
    logging.config.dictConfig(
        build_logging_config(
            (level or settings.log_level).upper(),
            settings.log_json if json_logs is None else json_logs,
        )
    )
    _configured = True
