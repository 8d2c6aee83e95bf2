"""Persist the reconciler record between invocations.

Every value is stored as a string, parsing happens on read by the caller. Writes
are synchronized before they return so a crash right after a cycle can't lose
the record. The two keys are written independently, there is no transaction
spanning both.
"""

from __future__ import annotations

import abc
import contextlib
import datetime
import logging
import os
import re
import subprocess
import tempfile
from typing import TYPE_CHECKING

import yaml

from snitchprot import config
from snitchprot.errors import (
    SnitchprotError,
    StoreCorrupt,
    StoreReadFailed,
    StoreWriteFailed,
)
from snitchprot.models import StoreBackend

if TYPE_CHECKING:
    import pathlib

logger = logging.getLogger("snitchprot")

# Format of date values as printed by `defaults read`.
DEFAULTS_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} [+-]\d{4}$")


class StateStore(abc.ABC):
    """Durable key-value store namespaced by the application identifier."""

    @abc.abstractmethod
    def get(self, key: str) -> str | None:
        """Return the value of key, None if it was never set."""

    @abc.abstractmethod
    def set(self, key: str, value: str) -> None:
        """Set key to value and synchronize."""

    @abc.abstractmethod
    def delete(self, key: str) -> None:
        """Remove key and synchronize. Missing keys are ignored."""

    @abc.abstractmethod
    def sync(self) -> None:
        """Flush pending writes to durable storage."""


class FileStateStore(StateStore):
    """Stores the record as a YAML mapping in ``<state_dir>/<app_id>.yaml``.

    Files are replaced atomically: the new content is written to a temporary
    file in the same directory, fsynced and renamed over the old file.
    """

    def __init__(self, state_dir: pathlib.Path, app_id: str) -> None:
        self.path = state_dir.joinpath(f"{app_id}.yaml")

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._write(data)

    def sync(self) -> None:
        try:
            fd = os.open(self.path.parent, os.O_RDONLY)
        except FileNotFoundError:
            return
        except OSError as err:
            msg = f"Couldn't open state directory '{self.path.parent}'"
            raise StoreWriteFailed(msg) from err
        try:
            os.fsync(fd)
        except OSError as err:
            msg = f"Couldn't synchronize state directory '{self.path.parent}'"
            raise StoreWriteFailed(msg) from err
        finally:
            os.close(fd)

    def _load(self) -> dict[str, str]:
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError) as err:
            msg = f"Couldn't read state file '{self.path}'"
            raise StoreReadFailed(msg) from err

        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as err:
            msg = f"State file '{self.path}' isn't valid YAML"
            raise StoreCorrupt(msg) from err

        if data is None:
            return {}
        if not isinstance(data, dict):
            msg = f"State file '{self.path}' doesn't contain a mapping"
            raise StoreCorrupt(msg)

        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _write(self, data: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    yaml.safe_dump(data, f, explicit_start=True, explicit_end=True)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, self.path)
            except BaseException:
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(tmp_name)
                raise
        except OSError as err:
            msg = f"Couldn't write state file '{self.path}'"
            raise StoreWriteFailed(msg) from err

        self.sync()
        logger.debug("Wrote state file '%s'.", self.path)


class DefaultsStateStore(StateStore):
    """Stores the record in the macOS preferences domain of the application.

    Values are written with ``defaults``, which hands them to cfprefsd
    synchronously.
    """

    def __init__(self, app_id: str, command: str = config.DEFAULTS_COMMAND) -> None:
        self.app_id = app_id
        self.command = command

    def get(self, key: str) -> str | None:
        proc = self._run(["read", self.app_id, key], StoreReadFailed)
        if proc.returncode != 0:
            if "does not exist" in proc.stderr:
                return None
            msg = f"Couldn't read '{key}' from '{self.app_id}': {proc.stderr.strip()}"
            raise StoreReadFailed(msg)

        value = proc.stdout.strip()
        # Older versions stored the refresh time as a date.
        if DEFAULTS_DATE_RE.match(value):
            try:
                date = datetime.datetime.strptime(value, "%Y-%m-%d %H:%M:%S %z")
            except ValueError as err:
                msg = f"Invalid date '{value}' stored for '{key}' in '{self.app_id}'"
                raise StoreCorrupt(msg) from err
            return str(int(date.timestamp()))
        return value

    def set(self, key: str, value: str) -> None:
        proc = self._run(
            ["write", self.app_id, key, "-string", value],
            StoreWriteFailed,
        )
        if proc.returncode != 0:
            msg = f"Couldn't write '{key}' to '{self.app_id}': {proc.stderr.strip()}"
            raise StoreWriteFailed(msg)

    def delete(self, key: str) -> None:
        proc = self._run(["delete", self.app_id, key], StoreWriteFailed)
        if proc.returncode != 0 and "does not exist" not in proc.stderr:
            msg = f"Couldn't delete '{key}' from '{self.app_id}': {proc.stderr.strip()}"
            raise StoreWriteFailed(msg)

    def sync(self) -> None:
        """Nothing to flush, every write is committed by ``defaults``."""

    def _run(
        self,
        args: list[str],
        error: type[SnitchprotError],
    ) -> subprocess.CompletedProcess[str]:
        try:
            return subprocess.run(  # noqa: S603
                [self.command, *args],
                capture_output=True,
                text=True,
                errors="replace",
                check=False,
            )
        except OSError as err:
            msg = f"Couldn't run '{self.command}'"
            raise error(msg) from err


def build_store(settings: config.Settings) -> StateStore:
    """Create the state store selected in the configuration."""
    if settings.store.backend == StoreBackend.DEFAULTS:
        return DefaultsStateStore(settings.app_id)
    return FileStateStore(settings.store.state_dir, settings.app_id)
