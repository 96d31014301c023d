"""Tests for key-value storage backends."""

import json
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from devtrend_pipeline.config import StorageConfig
from devtrend_pipeline.storage import (
    DynamoDBStore,
    FileSystemStore,
    StorageError,
    create_store,
)

NOW = 1_767_614_400  # 2026-01-05T12:00:00Z


def client_error(operation: str = "GetItem") -> ClientError:
    return ClientError(
        {"Error": {"Code": "ProvisionedThroughputExceededException", "Message": "slow down"}},
        operation,
    )


class TestDynamoDBStore:
    """Test DynamoDBStore."""

    def test_set_writes_partitioned_item(self) -> None:
        """Items are partitioned by the key namespace."""
        mock_table = MagicMock()
        store = DynamoDBStore(mock_table, clock=lambda: NOW)

        store.set("trend:2026-W02", {"week": "2026-W02"}, ttl_seconds=60)

        item = mock_table.put_item.call_args[1]["Item"]
        assert item["PK"] == "NS#trend"
        assert item["SK"] == "trend:2026-W02"
        assert json.loads(item["payload"]) == {"week": "2026-W02"}
        assert item["size"] == len(item["payload"].encode("utf-8"))
        assert item["ttl"] == NOW + 60

    def test_set_without_ttl_has_no_ttl_attribute(self) -> None:
        """Reports are stored without expiry."""
        mock_table = MagicMock()

        DynamoDBStore(mock_table).set("trend:2026-W02", {})

        assert "ttl" not in mock_table.put_item.call_args[1]["Item"]

    def test_get_returns_payload(self) -> None:
        """A live item returns its decoded payload."""
        mock_table = MagicMock()
        mock_table.get_item.return_value = {
            "Item": {"PK": "NS#cache", "SK": "cache:x", "payload": '{"a": 1}', "ttl": NOW + 10}
        }
        store = DynamoDBStore(mock_table, clock=lambda: NOW)

        assert store.get("cache:x") == {"a": 1}
        assert mock_table.get_item.call_args[1]["Key"] == {"PK": "NS#cache", "SK": "cache:x"}

    def test_get_filters_expired_items(self) -> None:
        """Items past their TTL read as missing."""
        mock_table = MagicMock()
        mock_table.get_item.return_value = {
            "Item": {"PK": "NS#cache", "SK": "cache:x", "payload": "{}", "ttl": NOW - 1}
        }
        store = DynamoDBStore(mock_table, clock=lambda: NOW)

        assert store.get("cache:x") is None

    def test_get_missing_item(self) -> None:
        """A missing item returns None."""
        mock_table = MagicMock()
        mock_table.get_item.return_value = {}

        assert DynamoDBStore(mock_table).get("cache:x") is None

    def test_get_corrupt_payload_raises(self) -> None:
        """An undecodable payload is a storage error, not a miss."""
        mock_table = MagicMock()
        mock_table.get_item.return_value = {"Item": {"payload": "{not json"}}

        with pytest.raises(StorageError):
            DynamoDBStore(mock_table).get("trend:2026-W02")

    def test_client_errors_become_storage_errors(self) -> None:
        """botocore failures surface as StorageError."""
        mock_table = MagicMock()
        mock_table.get_item.side_effect = client_error()
        mock_table.put_item.side_effect = client_error("PutItem")

        store = DynamoDBStore(mock_table)

        with pytest.raises(StorageError) as exc_info:
            store.get("trend:2026-W02")
        assert exc_info.value.operation == "get"
        assert exc_info.value.key == "trend:2026-W02"

        with pytest.raises(StorageError):
            store.set("trend:2026-W02", {})

    def test_delete_reports_whether_item_existed(self) -> None:
        """delete returns True only when an item was removed."""
        mock_table = MagicMock()
        mock_table.delete_item.side_effect = [{"Attributes": {"SK": "trend:x"}}, {}]
        store = DynamoDBStore(mock_table)

        assert store.delete("trend:x") is True
        assert store.delete("trend:x") is False

    def test_list_keys_follows_pagination(self) -> None:
        """list_keys pages through results and drops expired items."""
        mock_table = MagicMock()
        mock_table.query.side_effect = [
            {
                "Items": [{"SK": "trend:2026-W01"}, {"SK": "trend:2026-W02", "ttl": NOW - 5}],
                "LastEvaluatedKey": {"PK": "NS#trend", "SK": "trend:2026-W02"},
            },
            {"Items": [{"SK": "trend:2026-W03"}]},
        ]
        store = DynamoDBStore(mock_table, clock=lambda: NOW)

        keys = store.list_keys("trend:")

        assert keys == ["trend:2026-W01", "trend:2026-W03"]
        assert mock_table.query.call_count == 2
        assert mock_table.query.call_args_list[1][1]["ExclusiveStartKey"] == {
            "PK": "NS#trend",
            "SK": "trend:2026-W02",
        }

    def test_exists_checks_ttl(self) -> None:
        """exists respects expiry."""
        mock_table = MagicMock()
        mock_table.get_item.side_effect = [
            {"Item": {"PK": "NS#cache", "SK": "cache:x"}},
            {"Item": {"PK": "NS#cache", "SK": "cache:x", "ttl": NOW - 1}},
            {},
        ]
        store = DynamoDBStore(mock_table, clock=lambda: NOW)

        assert store.exists("cache:x") is True
        assert store.exists("cache:x") is False
        assert store.exists("cache:x") is False


class TestFileSystemStore:
    """Test FileSystemStore."""

    def test_set_then_get(self, tmp_path) -> None:
        """Stored values can be read back."""
        store = FileSystemStore(tmp_path)

        store.set("trend:2026-W02", {"week": "2026-W02", "repos": []})

        assert store.get("trend:2026-W02") == {"week": "2026-W02", "repos": []}
        assert store.exists("trend:2026-W02")

    def test_keys_are_safe_file_names(self, tmp_path) -> None:
        """Colons and slashes never reach the file system unencoded."""
        store = FileSystemStore(tmp_path)

        store.set("cache:repos:weekly:c/c++", [1])

        files = [p.name for p in tmp_path.iterdir()]
        assert len(files) == 1
        assert ":" not in files[0] and "/" not in files[0]
        assert store.list_keys("cache:") == ["cache:repos:weekly:c/c++"]

    def test_expired_values_read_as_missing(self, tmp_path) -> None:
        """Values past their TTL are not returned or listed."""
        now = [1000.0]
        store = FileSystemStore(tmp_path, clock=lambda: now[0])
        store.set("cache:x", "value", ttl_seconds=60)

        now[0] = 1061.0

        assert store.get("cache:x") is None
        assert store.list_keys("cache:") == []

    def test_missing_key(self, tmp_path) -> None:
        """Missing keys read as None and delete returns False."""
        store = FileSystemStore(tmp_path / "not-created-yet")

        assert store.get("trend:2026-W02") is None
        assert store.delete("trend:2026-W02") is False
        assert store.list_keys("trend:") == []

    def test_delete(self, tmp_path) -> None:
        """Deleted keys disappear."""
        store = FileSystemStore(tmp_path)
        store.set("trend:2026-W02", {})

        assert store.delete("trend:2026-W02") is True
        assert store.get("trend:2026-W02") is None

    def test_corrupt_file_raises(self, tmp_path) -> None:
        """A corrupt file is a storage error."""
        store = FileSystemStore(tmp_path)
        store.set("trend:2026-W02", {})
        next(tmp_path.iterdir()).write_text("{truncated", encoding="utf-8")

        with pytest.raises(StorageError):
            store.get("trend:2026-W02")

    def test_list_keys_filters_prefix(self, tmp_path) -> None:
        """Only keys with the prefix are listed."""
        store = FileSystemStore(tmp_path)
        store.set("trend:2026-W01", {})
        store.set("trend:2026-W02", {})
        store.set("meta:storage", {})

        assert store.list_keys("trend:") == ["trend:2026-W01", "trend:2026-W02"]


class TestCreateStore:
    """Test create_store()."""

    def test_filesystem_backend(self, tmp_path) -> None:
        """The filesystem backend uses the data directory."""
        config = StorageConfig(
            backend="filesystem",
            table_name="",
            endpoint_url=None,
            region_name="",
            data_dir=str(tmp_path),
        )

        assert isinstance(create_store(config), FileSystemStore)

    def test_dynamodb_backend(self) -> None:
        """The dynamodb backend wraps the configured table."""
        config = StorageConfig(
            backend="dynamodb",
            table_name="devtrend",
            endpoint_url="http://localhost:8000",
            region_name="ap-northeast-1",
            data_dir="data",
        )

        with patch("boto3.resource") as mock_resource:
            store = create_store(config)

        mock_resource.assert_called_once_with(
            "dynamodb", endpoint_url="http://localhost:8000", region_name="ap-northeast-1"
        )
        mock_resource.return_value.Table.assert_called_once_with("devtrend")
        assert isinstance(store, DynamoDBStore)
