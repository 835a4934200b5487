"""
Runtime settings for entryresolver.

Values come from the environment. REGISTRY_SKIP_VERIFY is read on every call
so a running webhook picks up the toggle without a restart.
"""

import logging
import os
import sys


def _env_float(name: str, default: str) -> float:
    value = os.getenv(name, default)
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds, got {value!r}") from None


DEFAULT_REGISTRY_ADDRESS = os.getenv("DEFAULT_REGISTRY_ADDRESS", "https://registry-1.docker.io/")
DOCKERHUB_HOSTS = ("registry-1.docker.io", "index.docker.io", "docker.io")

REGISTRY_TIMEOUT = _env_float("REGISTRY_TIMEOUT", "30")
SECRET_READ_TIMEOUT = _env_float("SECRET_READ_TIMEOUT", "10")

# os/architecture picked from multi-arch manifest lists
REGISTRY_PLATFORM = os.getenv("REGISTRY_PLATFORM", "linux/amd64")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def registry_skip_verify() -> bool:
    """True when registry TLS verification is explicitly disabled."""
    return os.getenv("REGISTRY_SKIP_VERIFY", "false").strip().lower() == "true"


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Install a single stderr handler on the root logger."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("kubernetes").setLevel(logging.WARNING)

    logging.debug("Logging configured: level=%s", level)
