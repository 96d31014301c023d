"""Key-value storage backends.

This module provides the storage contract used by the pipeline and two
implementations: DynamoDB for AWS deployment and a JSON file store for
local development.
"""

import json
import os
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any
from urllib.parse import quote, unquote

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from ..config import DYNAMODB_PK_PREFIX, STORAGE_BACKEND_DYNAMODB, StorageConfig
from ..logging_config import get_logger
from ..models import utc_now

logger = get_logger(__name__)


class StorageError(Exception):
    """Raised when a storage backend cannot complete an operation.

    Attributes:
        operation: The failed operation ("get", "set", ...)
        key: The key involved, if any
    """

    def __init__(self, operation: str, key: str | None, message: str) -> None:
        self.operation = operation
        self.key = key
        target = f" {key}" if key else ""
        super().__init__(f"{operation}{target} failed: {message}")


class KeyValueStore(ABC):
    """Storage contract: JSON-serializable values addressed by string keys."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the stored value, or None if the key is absent or expired."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Store a value, optionally expiring after ttl_seconds."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete a key. Returns True if something was deleted."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check for a live key without deserializing its value."""

    @abstractmethod
    def list_keys(self, prefix: str) -> list[str]:
        """Return every live key starting with prefix."""


def _namespace(key: str) -> str:
    return key.split(":", 1)[0]


class DynamoDBStore(KeyValueStore):
    """DynamoDB-backed store.

    Items are partitioned by key namespace (the part before the first ":"):
    PK = "NS#<namespace>", SK = <key>. The value is stored as a JSON string
    with its size, creation time and an optional TTL epoch. DynamoDB removes
    expired items lazily, so reads filter them out as well.
    """

    def __init__(self, table: Any, clock: Any = time.time) -> None:
        """Initialize DynamoDBStore with a DynamoDB table.

        Args:
            table: boto3 DynamoDB Table resource
            clock: Epoch-seconds time source
        """
        self._table = table
        self._clock = clock

    @staticmethod
    def _key(key: str) -> dict[str, str]:
        return {"PK": f"{DYNAMODB_PK_PREFIX}{_namespace(key)}", "SK": key}

    def _is_live(self, item: dict[str, Any]) -> bool:
        ttl = item.get("ttl")
        return ttl is None or int(ttl) > int(self._clock())

    def get(self, key: str) -> Any | None:
        try:
            response = self._table.get_item(Key=self._key(key))
        except (ClientError, BotoCoreError) as e:
            raise StorageError("get", key, str(e)) from e

        item = response.get("Item")
        if not item or not self._is_live(item):
            return None
        try:
            return json.loads(item["payload"])
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError("get", key, f"corrupt payload: {e}") from e

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        item: dict[str, Any] = {
            **self._key(key),
            "payload": payload,
            "size": len(payload.encode("utf-8")),
            "created_at": utc_now().isoformat(),
        }
        if ttl_seconds is not None:
            item["ttl"] = int(self._clock()) + int(ttl_seconds)

        try:
            self._table.put_item(Item=item)
        except (ClientError, BotoCoreError) as e:
            raise StorageError("set", key, str(e)) from e

    def delete(self, key: str) -> bool:
        try:
            response = self._table.delete_item(Key=self._key(key), ReturnValues="ALL_OLD")
        except (ClientError, BotoCoreError) as e:
            raise StorageError("delete", key, str(e)) from e
        return bool(response.get("Attributes"))

    def exists(self, key: str) -> bool:
        try:
            response = self._table.get_item(
                Key=self._key(key),
                ProjectionExpression="PK, SK, #ttl",
                ExpressionAttributeNames={"#ttl": "ttl"},
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError("exists", key, str(e)) from e
        item = response.get("Item")
        return bool(item) and self._is_live(item)

    def list_keys(self, prefix: str) -> list[str]:
        pk = f"{DYNAMODB_PK_PREFIX}{_namespace(prefix)}"
        query: dict[str, Any] = {
            "KeyConditionExpression": Key("PK").eq(pk) & Key("SK").begins_with(prefix),
            "ProjectionExpression": "SK, #ttl",
            "ExpressionAttributeNames": {"#ttl": "ttl"},
        }

        keys: list[str] = []
        try:
            while True:
                response = self._table.query(**query)
                keys.extend(
                    item["SK"] for item in response.get("Items", []) if self._is_live(item)
                )
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                query["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as e:
            raise StorageError("list_keys", prefix, str(e)) from e
        return keys


class FileSystemStore(KeyValueStore):
    """JSON file store for local development.

    One file per key under base_dir. File names are the percent-encoded key,
    and each file holds {"value": ..., "expires_at": epoch | null}.
    """

    SUFFIX = ".json"

    def __init__(self, base_dir: str | Path, clock: Any = time.time) -> None:
        self._base_dir = Path(base_dir)
        self._clock = clock

    def _path(self, key: str) -> Path:
        return self._base_dir / f"{quote(key, safe='')}{self.SUFFIX}"

    def _read(self, key: str, operation: str) -> dict[str, Any] | None:
        path = self._path(key)
        try:
            with path.open(encoding="utf-8") as f:
                envelope = json.load(f)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(operation, key, str(e)) from e
        except ValueError as e:
            raise StorageError(operation, key, f"corrupt file {path.name}: {e}") from e

        if not isinstance(envelope, dict) or "value" not in envelope:
            raise StorageError(operation, key, f"corrupt file {path.name}")
        expires_at = envelope.get("expires_at")
        if expires_at is not None and expires_at <= self._clock():
            return None
        return envelope

    def get(self, key: str) -> Any | None:
        envelope = self._read(key, "get")
        return envelope["value"] if envelope is not None else None

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        envelope = {
            "value": value,
            "expires_at": self._clock() + ttl_seconds if ttl_seconds is not None else None,
        }
        path = self._path(key)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            self._base_dir.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(envelope, f, ensure_ascii=False)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError("set", key, str(e)) from e

    def delete(self, key: str) -> bool:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError("delete", key, str(e)) from e
        return True

    def exists(self, key: str) -> bool:
        return self._read(key, "exists") is not None

    def list_keys(self, prefix: str) -> list[str]:
        if not self._base_dir.exists():
            return []
        try:
            names = [p.name for p in self._base_dir.iterdir() if p.name.endswith(self.SUFFIX)]
        except OSError as e:
            raise StorageError("list_keys", prefix, str(e)) from e

        keys = []
        for name in sorted(names):
            key = unquote(name[: -len(self.SUFFIX)])
            if key.startswith(prefix) and self.exists(key):
                keys.append(key)
        return keys


def create_store(config: StorageConfig) -> KeyValueStore:
    """Build the backend named by the storage configuration.

    Args:
        config: StorageConfig instance

    Returns:
        DynamoDBStore or FileSystemStore
    """
    if config.backend == STORAGE_BACKEND_DYNAMODB:
        dynamodb = boto3.resource(
            "dynamodb",
            endpoint_url=config.endpoint_url,
            region_name=config.region_name or None,
        )
        logger.info("storage_backend_selected", backend=config.backend, table=config.table_name)
        return DynamoDBStore(dynamodb.Table(config.table_name))

    logger.info("storage_backend_selected", backend=config.backend, data_dir=config.data_dir)
    return FileSystemStore(config.data_dir)
