"""
Persistence boundary for settings and audit entries.

Audit stores are append-only: they expose no update or delete. The
settings repository holds at most one row and is overwritten as a whole.
"""
import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from azure.core.exceptions import AzureError
from azure.storage.blob import BlobClient, ContainerClient

from spamgate.errors import PersistenceError
from spamgate.models.audit_entry import AuditEntry
from spamgate.models.decision import Decision
from spamgate.models.spam_settings import SpamSettings

logger = logging.getLogger("spamgate.storage")


# ---------------------------------------------------------
# Audit entries
# ---------------------------------------------------------

class AuditStore(ABC):

    @abstractmethod
    def append(self, entry: AuditEntry) -> None:
        """Persist a new entry. Raises PersistenceError on failure."""
        pass

    @abstractmethod
    def list_entries(
        self,
        limit: int = 100,
        decision: Optional[Decision] = None,
    ) -> List[AuditEntry]:
        """Most recent entries first."""
        pass


def _newest_first(entries: List[AuditEntry], limit: int, decision: Optional[Decision]) -> List[AuditEntry]:
    if decision is not None:
        entries = [e for e in entries if e.decision == decision]
    entries = sorted(entries, key=lambda e: e.created_at, reverse=True)
    return entries[:limit]


class InMemoryAuditStore(AuditStore):
    def __init__(self):
        self._entries: List[AuditEntry] = []
        self._lock = threading.Lock()

    def append(self, entry: AuditEntry) -> None:
        with self._lock:
            if any(e.entry_id == entry.entry_id for e in self._entries):
                raise PersistenceError(f"Audit entry {entry.entry_id} already exists")
            self._entries.append(entry)

    def list_entries(self, limit: int = 100, decision: Optional[Decision] = None) -> List[AuditEntry]:
        with self._lock:
            snapshot = list(self._entries)
        return _newest_first(snapshot, limit, decision)


class JsonlAuditStore(AuditStore):
    """
    One JSON object per line; the file is only ever opened for append.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = threading.Lock()

    def append(self, entry: AuditEntry) -> None:
        line = json.dumps(entry.to_dict(), sort_keys=True, ensure_ascii=False)
        try:
            with self._lock:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(line + "\n")
        except OSError as e:
            raise PersistenceError(f"Could not append audit entry: {e}") from e

    def list_entries(self, limit: int = 100, decision: Optional[Decision] = None) -> List[AuditEntry]:
        if not self.path.exists():
            return []
        entries = []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                for line_no, line in enumerate(f, 1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(AuditEntry.from_dict(json.loads(line)))
                    except (ValueError, KeyError) as e:
                        logger.error(f"Skipping unreadable audit line {line_no}: {type(e).__name__}")
        except OSError as e:
            raise PersistenceError(f"Could not read audit entries: {e}") from e
        return _newest_first(entries, limit, decision)


class BlobAuditStore(AuditStore):
    """
    One blob per entry, written with overwrite=False (WORM-ready).
    """

    def __init__(self, connection_string: str, container_name: str, prefix: str = "spam-decisions/"):
        self.connection_string = connection_string
        self.container_name = container_name
        self.prefix = prefix

    def _get_blob_client(self, blob_name: str) -> BlobClient:
        return BlobClient.from_connection_string(
            conn_str=self.connection_string,
            container_name=self.container_name,
            blob_name=blob_name,
        )

    def _get_container_client(self) -> ContainerClient:
        return ContainerClient.from_connection_string(
            conn_str=self.connection_string,
            container_name=self.container_name,
        )

    def append(self, entry: AuditEntry) -> None:
        blob_client = self._get_blob_client(f"{self.prefix}{entry.entry_id}.json")
        try:
            blob_client.upload_blob(
                data=json.dumps(entry.to_dict(), indent=2),
                overwrite=False,  # REQUIRED for immutability
            )
        except AzureError as e:
            raise PersistenceError(f"Could not upload audit entry: {type(e).__name__}") from e

    def list_entries(self, limit: int = 100, decision: Optional[Decision] = None) -> List[AuditEntry]:
        container = self._get_container_client()
        entries = []
        try:
            for blob in container.list_blobs(name_starts_with=self.prefix):
                raw = container.download_blob(blob.name).readall()
                entries.append(AuditEntry.from_dict(json.loads(raw)))
        except AzureError as e:
            raise PersistenceError(f"Could not list audit entries: {type(e).__name__}") from e
        return _newest_first(entries, limit, decision)


# ---------------------------------------------------------
# Settings
# ---------------------------------------------------------

class SettingsRepository(ABC):

    @abstractmethod
    def load(self) -> Optional[SpamSettings]:
        """Return the stored row, or None if none was provisioned."""
        pass

    @abstractmethod
    def save(self, settings: SpamSettings) -> None:
        """Replace the stored row. Raises PersistenceError on failure."""
        pass


class InMemorySettingsRepository(SettingsRepository):
    def __init__(self, initial: Optional[SpamSettings] = None):
        self._row = initial

    def load(self) -> Optional[SpamSettings]:
        return self._row

    def save(self, settings: SpamSettings) -> None:
        self._row = settings


class JsonFileSettingsRepository(SettingsRepository):
    """
    Single JSON document, replaced atomically on every save.
    """

    def __init__(self, path: str):
        self.path = Path(path)

    def load(self) -> Optional[SpamSettings]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return SpamSettings.from_dict(json.load(f))
        except (OSError, ValueError, TypeError) as e:
            raise PersistenceError(f"Could not read settings: {type(e).__name__}") from e

    def save(self, settings: SpamSettings) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".settings-", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(settings.to_dict(), f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise PersistenceError(f"Could not write settings: {e}") from e
