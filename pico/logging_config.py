"""
Custom logging configuration to suppress per-request secret backend logs
"""

import logging
import logging.config
from typing import Dict, Any


class VaultRequestFilter(logging.Filter):
    """Filter to suppress httpx request lines for the Vault API."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter out Vault requests from httpx logs below WARNING."""
        if record.name.startswith("httpx") and record.levelno < logging.WARNING:
            message = record.getMessage()
            if "/v1/" in message:
                return False  # Token renewals and secret reads, every interval
        return True


def get_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """Get logging configuration for the agent at the given level."""
    level = level.upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "vault_request_filter": {
                "()": VaultRequestFilter
            }
        },
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            },
            "task": {
                "format": "%(asctime)s - %(levelname)s - %(message)s"
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout"
            },
            "http": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
                "filters": ["vault_request_filter"]
            },
            "task": {
                "class": "logging.StreamHandler",
                "formatter": "task",
                "stream": "ext://sys.stdout"
            }
        },
        "loggers": {
            "httpx": {
                "handlers": ["http"],
                "level": level,
                "propagate": False
            },
            "pico": {
                "handlers": ["default"],
                "level": level,
                "propagate": False
            },
            "pico.task": {
                "handlers": ["task"],
                "level": level,
                "propagate": False
            }
        },
        "root": {
            "level": "WARNING",
            "handlers": ["default"]
        }
    }
