"""Helper functions providing functions used throughout the application."""

from __future__ import annotations

import logging
import pathlib
import sys
import time

import pydantic_core
import yaml

from snitchprot import config
from snitchprot.errors import ConfigurationError

logger = logging.getLogger("snitchprot")
audit = logging.getLogger("snitchprot.audit")

AUDIT_FORMAT = "[%(asctime)s] %(message)s"
AUDIT_DATEFMT = "%Y-%m-%d %H:%M:%S"


class AuditFileHandler(logging.FileHandler):
    """Append-only file handler that creates its directory on first write."""

    def __init__(self, filename: pathlib.Path) -> None:
        super().__init__(filename, mode="a", encoding="utf-8", delay=True)
        self.setFormatter(logging.Formatter(fmt=AUDIT_FORMAT, datefmt=AUDIT_DATEFMT))

    def _open(self):  # noqa: ANN202
        self.path.parent.mkdir(parents=True, exist_ok=True)
        return super()._open()

    @property
    def path(self) -> pathlib.Path:
        """Path of the log file."""
        return pathlib.Path(self.baseFilename)


def unix_now() -> int:
    """Current time in whole unix seconds."""
    return int(time.time())


def load_settings(path: pathlib.Path | None = None) -> config.Settings:
    """Load the configuration, falling back to the defaults if there is no file."""
    path = path or config.CONFIG_PATH
    try:
        with path.open(encoding="utf-8") as f:
            try:
                cfg_dict = yaml.safe_load(f)
            except yaml.YAMLError as err:
                msg = f"Configuration is not valid '{path}'"
                raise ConfigurationError(msg) from err
    except FileNotFoundError:
        logger.debug("Configuration file not found at '%s'. Using defaults.", path)
        return config.Settings()
    except OSError as err:
        msg = f"Configuration file '{path}' couldn't be read"
        raise ConfigurationError(msg) from err

    if cfg_dict is None:
        cfg_dict = {}
    if not isinstance(cfg_dict, dict):
        msg = f"Configuration '{path}' must be a mapping"
        raise ConfigurationError(msg)

    try:
        return config.Settings(**cfg_dict)
    except pydantic_core.ValidationError as err:
        msg = f"Configuration '{path}' doesn't adhere to the schema"
        raise ConfigurationError(msg) from err


def setup_logging(settings: config.Settings | None = None) -> None:
    """Configure the diagnostic logger and, with settings, the audit log."""
    formatter = logging.Formatter(
        fmt=(
            "%(asctime)s(File:%(name)s,Line:%(lineno)d,"
            "%(funcName)s) - %(levelname)s - %(message)s"
        ),
        datefmt="%m/%d/%Y %H:%M:%S %p",
    )
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        stream = logging.StreamHandler(sys.stderr)
        stream.setFormatter(formatter)
        logger.addHandler(stream)
    logger.setLevel(level=logging.INFO)

    if settings is None:
        return

    logger.setLevel(level=settings.log_level)
    for handler in audit.handlers[:]:
        audit.removeHandler(handler)
        handler.close()
    audit.addHandler(AuditFileHandler(settings.log_path))
    audit.setLevel(level=logging.INFO)
