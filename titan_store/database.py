import asyncio
import hashlib
import json
import logging
import os
import tempfile
import uuid
import weakref
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .models import Catalog, record_id

# Storage ports for the catalog document plus the per-document write locks.

logger = logging.getLogger(__name__)

# a lock lives as long as some store holds it; stores on one document share it
_LOCKS: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


def _get_lock(key: str) -> asyncio.Lock:
    lock = _LOCKS.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _LOCKS[key] = lock
    return lock


class StorageError(Exception):
    pass


class StorageWriteError(StorageError):
    pass


class CatalogConflict(StorageError):
    """The document changed between the read and the write that depended on it."""

    def __init__(self, expected: str, actual: str):
        super().__init__(f"catalog version changed: expected {expected!r}, found {actual!r}")
        self.expected = expected
        self.actual = actual


@dataclass
class Snapshot:
    catalog: Catalog
    version: str


def parse_document(raw: bytes, source: str = "catalog") -> Catalog:
    """
    Parse a stored document into a Catalog.
    Never raises: anything unreadable becomes an empty catalog. Records are
    kept exactly as stored, whatever their shape.
    """
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("%s is not valid JSON, using an empty catalog: %s", source, e)
        return Catalog()

    records = data.get("products") if isinstance(data, dict) else None
    if not isinstance(records, list):
        logger.warning("%s has no products list, using an empty catalog", source)
        return Catalog()

    unnamed = sum(1 for r in records if not isinstance(record_id(r), str))
    if unnamed:
        logger.warning("%s holds %d record(s) without a string id", source, unnamed)
    return Catalog.model_validate(data)


def dump_document(catalog: Catalog) -> bytes:
    return json.dumps(catalog.to_dict(), indent=2, ensure_ascii=False).encode("utf-8")


class CatalogStorage:
    """Where the catalog document lives. Implementations must be swappable."""

    key: str

    def read(self) -> Snapshot:
        raise NotImplementedError

    def write(self, catalog: Catalog, expected_version: Optional[str] = None) -> str:
        """
        Replace the whole document and return its new version.
        With expected_version set, raise CatalogConflict if the stored
        document is no longer at that version. Without it the write is
        last-writer-wins.
        """
        raise NotImplementedError


class InMemoryStorage(CatalogStorage):
    def __init__(self, catalog: Optional[Catalog] = None):
        self.key = f"memory:{uuid.uuid4().hex}"
        self._raw: Optional[bytes] = dump_document(catalog) if catalog is not None else None
        self._version = 0

    def read(self) -> Snapshot:
        if self._raw is None:
            return Snapshot(Catalog(), str(self._version))
        return Snapshot(parse_document(self._raw, self.key), str(self._version))

    def write(self, catalog: Catalog, expected_version: Optional[str] = None) -> str:
        current = str(self._version)
        if expected_version is not None and expected_version != current:
            raise CatalogConflict(expected_version, current)
        self._raw = dump_document(catalog)
        self._version += 1
        return str(self._version)


class JsonFileStorage(CatalogStorage):
    """
    The catalog as one JSON file on disk.
    The version of the document is the sha256 of its bytes ("" when the
    file does not exist). Writes go to a temp file in the same directory
    and are renamed over the document.
    """

    def __init__(self, path):
        self.path = Path(path)
        self.key = f"file:{self.path.resolve()}"

    def _read_bytes(self) -> Optional[bytes]:
        try:
            return self.path.read_bytes()
        except FileNotFoundError:
            return None

    @staticmethod
    def _version_of(raw: Optional[bytes]) -> str:
        return hashlib.sha256(raw).hexdigest() if raw is not None else ""

    def read(self) -> Snapshot:
        try:
            raw = self._read_bytes()
        except OSError as e:
            logger.warning("could not read %s, using an empty catalog: %s", self.path, e)
            return Snapshot(Catalog(), "")
        if raw is None:
            logger.info("%s does not exist yet, using an empty catalog", self.path)
            return Snapshot(Catalog(), "")
        return Snapshot(parse_document(raw, str(self.path)), self._version_of(raw))

    def write(self, catalog: Catalog, expected_version: Optional[str] = None) -> str:
        if expected_version is not None:
            try:
                current = self._version_of(self._read_bytes())
            except OSError as e:
                raise StorageWriteError(f"could not check {self.path}: {e}") from e
            if current != expected_version:
                raise CatalogConflict(expected_version, current)

        raw = dump_document(catalog)
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "wb", dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp", delete=False
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(raw)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageWriteError(f"could not write {self.path}: {e}") from e
        return self._version_of(raw)
