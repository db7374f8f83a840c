"""
Snapshot Storage Module

Provides the abstract snapshot interface and implementations for in-memory
(testing) and JSON file persistence. The whole ledger is written on every
save; monetary values are stored as Decimal strings.
"""

from abc import ABC, abstractmethod
from decimal import InvalidOperation
from pathlib import Path
from typing import Any, Dict, Optional, Union
import json
import os
import shutil
import tempfile
import threading

from .errors import PersistenceReadError, PersistenceWriteError
from .ledger import Ledger
from .logging_config import get_logger, log_action

# Anything a malformed snapshot can raise while being rebuilt
SNAPSHOT_SHAPE_ERRORS = (KeyError, TypeError, ValueError, AttributeError, InvalidOperation)


class SnapshotStore(ABC):
    """Abstract interface for ledger snapshot backends"""

    def __init__(self, **ledger_options):
        self.ledger_options: Dict[str, Any] = ledger_options
        self.load_error: Optional[PersistenceReadError] = None
        self._lock = threading.RLock()
        self.logger = get_logger("atm_ledger.storage")

    @abstractmethod
    def _read(self) -> Optional[Dict[str, Any]]:
        """Return the raw snapshot, or None when nothing has been saved yet"""
        pass

    @abstractmethod
    def _write(self, snapshot: Dict[str, Any]) -> None:
        """Replace the stored snapshot"""
        pass

    def empty_ledger(self) -> Ledger:
        return Ledger(store=self, **self.ledger_options)

    def load(self) -> Ledger:
        """
        Load the ledger bound to this store

        A missing snapshot yields an empty ledger. An unreadable one also
        yields an empty ledger; the failure is logged and kept in
        ``load_error`` and the stored data is left untouched.
        """
        with self._lock:
            self.load_error = None
            try:
                raw = self._read()
                if raw is None:
                    return self.empty_ledger()
                ledger = Ledger.from_snapshot(raw, store=self, **self.ledger_options)
            except PersistenceReadError as e:
                return self._degraded(e)
            except SNAPSHOT_SHAPE_ERRORS as e:
                return self._degraded(PersistenceReadError(f"Malformed snapshot: {e}"))

        log_action(
            self.logger, "info", f"Loaded {len(ledger)} accounts",
            action="load", resource=self.describe()
        )
        return ledger

    def _degraded(self, error: PersistenceReadError) -> Ledger:
        self.load_error = error
        log_action(
            self.logger, "warning",
            f"Could not read snapshot, starting with an empty ledger: {error}",
            action="load", resource=self.describe(),
            extra={"error_code": error.error_code.value}
        )
        return self.empty_ledger()

    def save(self, ledger: Ledger) -> None:
        """
        Overwrite the stored snapshot with the full ledger state

        The snapshot is built under the store lock so a slower save can never
        write older state over a newer one.

        Raises:
            PersistenceWriteError: If the snapshot could not be written
        """
        with self._lock:
            self._write(ledger.snapshot())

    def describe(self) -> str:
        return type(self).__name__


class InMemorySnapshotStore(SnapshotStore):
    """In-memory snapshot store for testing"""

    def __init__(self, **ledger_options):
        super().__init__(**ledger_options)
        self._data: Optional[str] = None

    def _read(self) -> Optional[Dict[str, Any]]:
        if self._data is None:
            return None
        try:
            return json.loads(self._data)
        except json.JSONDecodeError as e:
            raise PersistenceReadError(f"Snapshot is not valid JSON: {e}")

    def _write(self, snapshot: Dict[str, Any]) -> None:
        # Serialized copy so later mutation of the ledger cannot leak in
        self._data = json.dumps(snapshot, default=str)

    def get_raw(self) -> Optional[str]:
        """Serialized snapshot for debugging/inspection"""
        return self._data

    def set_raw(self, data: Optional[str]) -> None:
        self._data = data


class JSONFileSnapshotStore(SnapshotStore):
    """Single JSON file snapshot, replaced atomically on every save"""

    def __init__(self, path: Union[str, Path], **ledger_options):
        super().__init__(**ledger_options)
        self.path = Path(path)

    def describe(self) -> str:
        return str(self.path)

    @property
    def unreadable_copy_path(self) -> Path:
        return self.path.with_name(self.path.name + ".unreadable")

    def _degraded(self, error: PersistenceReadError) -> Ledger:
        # The next save overwrites the snapshot, so keep the bytes for the operator
        if self.path.exists():
            try:
                shutil.copy2(self.path, self.unreadable_copy_path)
            except OSError as e:
                log_action(
                    self.logger, "error", f"Could not preserve unreadable snapshot: {e}",
                    action="load", resource=self.describe()
                )
        return super()._degraded(error)

    def _read(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise PersistenceReadError(f"Snapshot is not valid JSON: {e}")
        except (OSError, UnicodeDecodeError) as e:
            raise PersistenceReadError(f"Could not read {self.path}: {e}")

    def _write(self, snapshot: Dict[str, Any]) -> None:
        directory = self.path.parent
        tmp_path = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(directory)
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(snapshot, f, indent=2, default=str)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            raise PersistenceWriteError(f"Could not write {self.path}: {e}")
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)


def create_store(path: Optional[Union[str, Path]], **ledger_options) -> SnapshotStore:
    """File store for a path, in-memory store when no path is configured"""
    if not path:
        return InMemorySnapshotStore(**ledger_options)
    return JSONFileSnapshotStore(path, **ledger_options)
