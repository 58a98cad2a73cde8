"""
Persistence gateway for SplitLedger

LedgerStore is the only component that talks to the key-value store. Each
collection is a JSON array under one string key; saves replace the whole
array. Friends and groups are scoped by owner so switching owner never shows
another owner's lists.
"""
from __future__ import annotations
import asyncio
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, List, Optional
from urllib.parse import quote

from errors import StorageCode, StorageError
from schema import (
    RECORD_ERRORS,
    bill_from_dict,
    bill_to_dict,
    friend_from_dict,
    friend_to_dict,
    group_from_dict,
    group_to_dict,
)

logger = logging.getLogger(__name__)


class Collection(str, Enum):
    BILLS = "bills"
    GROUPS = "groups"
    FRIENDS = "friends"


_CODECS = {
    Collection.BILLS: (bill_to_dict, lambda d: bill_from_dict(d), lambda r: r.id),
    Collection.GROUPS: (
        group_to_dict,
        lambda d: group_from_dict(
            d, on_bad_bill=lambda raw, ex: logger.warning("Dropping invalid group bill: %s", ex)
        ),
        lambda r: r.id,
    ),
    Collection.FRIENDS: (friend_to_dict, friend_from_dict, lambda r: r.name),
}


class KeyValueStore(ABC):
    """Async string key-value store"""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def remove(self, key: str) -> None:
        ...


class MemoryKeyValueStore(KeyValueStore):
    """In-process store, used for tests and previews"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileKeyValueStore(KeyValueStore):
    """One file per key under a directory; writes replace the file atomically"""

    def __init__(self, directory: str):
        self.directory = directory

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, quote(key, safe="") + ".json")

    def _read(self, key: str) -> Optional[str]:
        try:
            with open(self._path(key), "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None

    def _write(self, key: str, value: str) -> None:
        os.makedirs(self.directory, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp, self._path(key))
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def _remove(self, key: str) -> None:
        try:
            os.unlink(self._path(key))
        except FileNotFoundError:
            pass

    async def get(self, key: str) -> Optional[str]:
        try:
            return await asyncio.to_thread(self._read, key)
        except UnicodeDecodeError as ex:
            raise StorageError(StorageCode.CORRUPT_COLLECTION, f"{key} is not valid UTF-8: {ex}") from ex
        except OSError as ex:
            raise StorageError(StorageCode.UNAVAILABLE, f"Cannot read {key}: {ex}") from ex

    async def set(self, key: str, value: str) -> None:
        try:
            await asyncio.to_thread(self._write, key, value)
        except OSError as ex:
            raise StorageError(StorageCode.UNAVAILABLE, f"Cannot write {key}: {ex}") from ex

    async def remove(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._remove, key)
        except OSError as ex:
            raise StorageError(StorageCode.UNAVAILABLE, f"Cannot remove {key}: {ex}") from ex


class LedgerStore:
    """Load and save ledger collections through a KeyValueStore"""

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    @staticmethod
    def key_for(collection: Collection, owner_id: str) -> str:
        owner = (owner_id or "").strip()
        if collection is Collection.BILLS:
            return "bills"
        if collection is Collection.GROUPS:
            return f"billBuddy_groups_{owner}"
        return f"friends_{owner}"

    async def load(self, collection: Collection, owner_id: str) -> List:
        """
        Load a collection. Records that fail validation are dropped with a
        warning; a payload that is not a JSON array raises StorageError.
        """
        key = self.key_for(collection, owner_id)
        raw = await self.kv.get(key)
        if raw is None:
            return []
        try:
            items = json.loads(raw)
        except ValueError as ex:
            raise StorageError(StorageCode.CORRUPT_COLLECTION, f"{key} is not valid JSON: {ex}") from ex
        if not isinstance(items, list):
            raise StorageError(StorageCode.CORRUPT_COLLECTION, f"{key} is not an array")

        _, from_dict, _ = _CODECS[collection]
        records = []
        for item in items:
            try:
                records.append(from_dict(item))
            except RECORD_ERRORS as ex:
                logger.warning("Dropping invalid record in %s: %s", key, ex)
        if len(records) < len(items):
            logger.info("Loaded %d of %d records from %s", len(records), len(items), key)
        return records

    async def save(self, collection: Collection, owner_id: str, records: List) -> None:
        """Replace the stored collection with records"""
        key = self.key_for(collection, owner_id)
        to_dict, _, _ = _CODECS[collection]
        try:
            payload = json.dumps([to_dict(r) for r in records], ensure_ascii=False)
        except (TypeError, ValueError) as ex:
            raise StorageError(StorageCode.SERIALIZATION_FAILURE, f"Cannot serialize {key}: {ex}") from ex
        await self.kv.set(key, payload)
        logger.debug("Saved %d records to %s", len(records), key)

    async def append(self, collection: Collection, owner_id: str, record) -> None:
        records = await self.load(collection, owner_id)
        records.append(record)
        await self.save(collection, owner_id, records)

    async def remove(self, collection: Collection, owner_id: str, record_id: str) -> bool:
        """Remove one record by id; returns False when it was not stored"""
        _, _, id_of = _CODECS[collection]
        records = await self.load(collection, owner_id)
        kept = [r for r in records if id_of(r) != record_id]
        if len(kept) == len(records):
            return False
        await self.save(collection, owner_id, kept)
        return True
