# FILE: daily_quiz/services/record_store.py
"""
Keyed record stores (persistence provider)

Collections of JSON documents keyed by string. Both implementations offer
the three primitives the engine relies on:

- get(collection, key)
- create_if_absent(collection, key, value) -> (stored_value, created)
- update(collection, key, mutate) -> atomic read-modify-write

update() is optimistic: mutate() receives a private copy of the current
value (None when absent) and returns the new value, or None to leave the
record unchanged. It may be called more than once when writers race, so it
must be deterministic and free of side effects.
"""
import copy
import hashlib
import json
import logging
import os
import random
import threading
import time
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from daily_quiz.errors import ConflictRetryExhausted, StoreUnavailable

logger = logging.getLogger(__name__)

Mutator = Callable[[Optional[Dict[str, Any]]], Optional[Dict[str, Any]]]


class RecordStore:
    """Interface shared by the file and in-memory stores"""

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def create_if_absent(
        self, collection: str, key: str, value: Dict[str, Any]
    ) -> Tuple[Dict[str, Any], bool]:
        raise NotImplementedError

    def update(self, collection: str, key: str, mutate: Mutator) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def items(self, collection: str) -> List[Tuple[str, Dict[str, Any]]]:
        raise NotImplementedError


class JsonFileRecordStore(RecordStore):
    """
    One JSON file per record: <base_dir>/<collection>/<sha256(key)>.json

    Files hold {"key", "version", "value"}. New records are published with
    os.link (fails if the target exists), replacements go through a per-key
    lock file plus a version check and os.replace, so readers never see a
    partial document and a failed write leaves the previous one in place.
    """

    def __init__(
        self,
        base_dir: str,
        max_retries: int = 8,
        retry_backoff_ms: int = 15,
        lock_timeout_seconds: float = 10.0
    ):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.max_retries = max_retries
        self.retry_backoff_ms = retry_backoff_ms
        self.lock_timeout_seconds = lock_timeout_seconds

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        envelope = self._read(self._path(collection, key))
        return envelope["value"] if envelope else None

    def create_if_absent(
        self, collection: str, key: str, value: Dict[str, Any]
    ) -> Tuple[Dict[str, Any], bool]:
        path = self._path(collection, key)
        created = self._publish_new(path, {"key": key, "version": 1, "value": value})
        if created:
            logger.debug(f"Record created: {collection}/{key}")
            return value, True

        existing = self._read(path)
        return existing["value"], False

    def update(self, collection: str, key: str, mutate: Mutator) -> Optional[Dict[str, Any]]:
        path = self._path(collection, key)

        for attempt in range(1, self.max_retries + 1):
            envelope = self._read(path)
            version = envelope["version"] if envelope else 0
            current = copy.deepcopy(envelope["value"]) if envelope else None

            updated = mutate(current)
            if updated is None:
                return envelope["value"] if envelope else None

            new_envelope = {"key": key, "version": version + 1, "value": updated}
            if version == 0:
                committed = self._publish_new(path, new_envelope)
            else:
                committed = self._replace_if_version(path, version, new_envelope)

            if committed:
                return updated

            logger.debug(f"Write conflict on {collection}/{key} (attempt {attempt})")
            self._backoff(attempt)

        logger.warning(f"Conflict retries exhausted for {collection}/{key}")
        raise ConflictRetryExhausted(
            f"Concurrent writers kept winning on {collection}/{key}",
            collection=collection,
            attempts=self.max_retries,
        )

    def items(self, collection: str) -> List[Tuple[str, Dict[str, Any]]]:
        results = []
        for path in sorted(self._collection_dir(collection).glob("*.json")):
            envelope = self._read(path)
            if envelope:
                results.append((envelope["key"], envelope["value"]))
        return results

    # ------------------------------------------------------------------
    # file helpers
    # ------------------------------------------------------------------
    def _collection_dir(self, collection: str) -> Path:
        directory = self.base_dir / collection
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreUnavailable(f"Cannot create collection {collection}: {e}")
        return directory

    def _path(self, collection: str, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self._collection_dir(collection) / f"{digest}.json"

    def _read(self, path: Path) -> Optional[Dict[str, Any]]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            raise StoreUnavailable(f"Failed to read {path.name}: {e}")

    def _write_temp(self, path: Path, envelope: Dict[str, Any]) -> Path:
        tmp_path = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(envelope, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise StoreUnavailable(f"Failed to write {path.name}: {e}")
        return tmp_path

    def _publish_new(self, path: Path, envelope: Dict[str, Any]) -> bool:
        """Create the record only if nobody else has; False if it exists"""
        tmp_path = self._write_temp(path, envelope)
        try:
            os.link(tmp_path, path)
            return True
        except FileExistsError:
            return False
        except OSError as e:
            raise StoreUnavailable(f"Failed to publish {path.name}: {e}")
        finally:
            tmp_path.unlink(missing_ok=True)

    def _replace_if_version(self, path: Path, version: int, envelope: Dict[str, Any]) -> bool:
        lock_path = path.with_suffix(".lock")
        if not self._acquire_lock(lock_path):
            return False
        try:
            latest = self._read(path)
            if latest is None or latest["version"] != version:
                return False
            tmp_path = self._write_temp(path, envelope)
            try:
                os.replace(tmp_path, path)
            except OSError as e:
                tmp_path.unlink(missing_ok=True)
                raise StoreUnavailable(f"Failed to replace {path.name}: {e}")
            return True
        finally:
            lock_path.unlink(missing_ok=True)

    def _acquire_lock(self, lock_path: Path) -> bool:
        try:
            fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            self._break_stale_lock(lock_path)
            return False
        except OSError as e:
            raise StoreUnavailable(f"Failed to lock {lock_path.name}: {e}")
        try:
            os.write(fd, str(os.getpid()).encode("ascii"))
        finally:
            os.close(fd)
        return True

    def _break_stale_lock(self, lock_path: Path):
        try:
            age = time.time() - lock_path.stat().st_mtime
        except FileNotFoundError:
            return
        if age > self.lock_timeout_seconds:
            logger.warning(f"Breaking stale lock {lock_path.name} (age {age:.1f}s)")
            lock_path.unlink(missing_ok=True)

    def _backoff(self, attempt: int):
        delay_ms = self.retry_backoff_ms * attempt * random.uniform(0.5, 1.5)
        time.sleep(delay_ms / 1000.0)


class InMemoryRecordStore(RecordStore):
    """Thread-locked dict store for single-process deployments and tests"""

    def __init__(self):
        self._lock = threading.Lock()
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            value = self._collections.get(collection, {}).get(key)
            return copy.deepcopy(value)

    def create_if_absent(
        self, collection: str, key: str, value: Dict[str, Any]
    ) -> Tuple[Dict[str, Any], bool]:
        with self._lock:
            records = self._collections.setdefault(collection, {})
            if key in records:
                return copy.deepcopy(records[key]), False
            records[key] = copy.deepcopy(value)
            return copy.deepcopy(value), True

    def update(self, collection: str, key: str, mutate: Mutator) -> Optional[Dict[str, Any]]:
        with self._lock:
            records = self._collections.setdefault(collection, {})
            current = copy.deepcopy(records.get(key))
            updated = mutate(current)
            if updated is None:
                return copy.deepcopy(records.get(key))
            records[key] = copy.deepcopy(updated)
            return copy.deepcopy(updated)

    def items(self, collection: str) -> List[Tuple[str, Dict[str, Any]]]:
        with self._lock:
            records = self._collections.get(collection, {})
            return [(key, copy.deepcopy(value)) for key, value in sorted(records.items())]


def build_record_store(settings) -> RecordStore:
    """Create the store selected by STORE_BACKEND"""
    if settings.store_backend == "memory":
        logger.info("Using in-memory record store")
        return InMemoryRecordStore()

    store_dir = Path(settings.data_dir) / "records"
    logger.info(f"Using JSON file record store at {store_dir}")
    return JsonFileRecordStore(
        base_dir=str(store_dir),
        max_retries=settings.store_max_retries,
        retry_backoff_ms=settings.store_retry_backoff_ms,
        lock_timeout_seconds=settings.store_lock_timeout_seconds,
    )
