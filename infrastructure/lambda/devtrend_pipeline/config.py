"""Configuration for the DevTrend pipeline.

This module provides configuration for storage, external API access and
pipeline tuning, supporting both local development and AWS deployment.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache

import boto3
from botocore.exceptions import BotoCoreError, ClientError


class ConfigurationError(Exception):
    """Raised when configuration is malformed or refers to unknown names."""


@dataclass
class StorageConfig:
    """Storage backend configuration.

    Attributes:
        backend: "dynamodb" for AWS deployment, "filesystem" for local runs
        table_name: Name of the DynamoDB table
        endpoint_url: Custom endpoint URL (for DynamoDB Local)
        region_name: AWS region
        data_dir: Root directory for the filesystem backend
    """

    backend: str
    table_name: str
    endpoint_url: str | None
    region_name: str
    data_dir: str


@dataclass
class ExternalAPIConfig:
    """External API configuration.

    Attributes:
        github_access_token: GitHub Personal Access Token (GraphQL API)
    """

    github_access_token: str | None


@dataclass
class PipelineConfig:
    """Tuning knobs for collection, fallback and retention."""

    cache_ttl_seconds: int = 6 * 60 * 60
    min_repo_count: int = 10
    min_post_count: int = 1
    use_static_fallback: bool = True
    health_ttl_seconds: int = 300
    retry_max_attempts: int = 3
    retry_base_delay: float = 1.0
    inter_request_delay: float = 2.0
    languages: tuple[str, ...] = field(
        default=("javascript", "typescript", "python", "go", "rust")
    )
    retention_weeks: int = 52

    def min_items_for(self, category: str) -> int:
        """Return the minimum item count a category needs to be accepted."""
        if category == CATEGORY_REPOS:
            return self.min_repo_count
        if category == CATEGORY_POSTS:
            return self.min_post_count
        raise ConfigurationError(f"Unknown category: {category}")


def get_storage_config() -> StorageConfig:
    """Get storage configuration from environment variables.

    Environment Variables:
        DEVTREND_STORAGE_BACKEND: "dynamodb" or "filesystem" (default)
        DYNAMODB_TABLE_NAME: Table name (required for dynamodb)
        DYNAMODB_ENDPOINT_URL: Custom endpoint (for local development)
        AWS_REGION: AWS region
        DEVTREND_DATA_DIR: Data directory for the filesystem backend

    Returns:
        StorageConfig instance

    Raises:
        ConfigurationError: If the backend name is unknown or the
            dynamodb backend has no table name
    """
    backend = os.getenv("DEVTREND_STORAGE_BACKEND", STORAGE_BACKEND_FILESYSTEM)
    if backend not in (STORAGE_BACKEND_DYNAMODB, STORAGE_BACKEND_FILESYSTEM):
        raise ConfigurationError(f"Unknown storage backend: {backend}")

    table_name = os.getenv("DYNAMODB_TABLE_NAME", "")
    if backend == STORAGE_BACKEND_DYNAMODB and not table_name:
        raise ConfigurationError("DYNAMODB_TABLE_NAME is required for dynamodb")

    return StorageConfig(
        backend=backend,
        table_name=table_name,
        endpoint_url=os.getenv("DYNAMODB_ENDPOINT_URL"),
        region_name=os.getenv("AWS_REGION", ""),
        data_dir=os.getenv("DEVTREND_DATA_DIR", "data"),
    )


@lru_cache(maxsize=10)
def _get_secret(secret_name: str) -> str | None:
    """Get secret value from AWS Secrets Manager.

    Args:
        secret_name: Name of the secret in Secrets Manager

    Returns:
        Secret value or None if not found
    """
    region = os.getenv("AWS_REGION", "")
    if not region:
        return None

    client = boto3.client("secretsmanager", region_name=region)
    try:
        response = client.get_secret_value(SecretId=secret_name)
        return response.get("SecretString")
    except (ClientError, BotoCoreError):
        return None


def get_external_api_config() -> ExternalAPIConfig:
    """Get external API configuration.

    Supports two modes:
    1. Direct environment variable (local development):
       - GITHUB_ACCESS_TOKEN
    2. Secrets Manager (Lambda deployment):
       - GITHUB_SECRET_NAME → reads from Secrets Manager

    Returns:
        ExternalAPIConfig instance
    """
    github_token = os.getenv("GITHUB_ACCESS_TOKEN")

    if not github_token:
        github_secret_name = os.getenv("GITHUB_SECRET_NAME")
        if github_secret_name:
            github_token = _get_secret(github_secret_name)

    return ExternalAPIConfig(github_access_token=github_token)


def _env_number(name: str, default: float, cast: type) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative, got {raw!r}")
    return value


def get_pipeline_config() -> PipelineConfig:
    """Get pipeline tuning from DEVTREND_* environment variables.

    Unset variables keep the PipelineConfig defaults.

    Returns:
        PipelineConfig instance

    Raises:
        ConfigurationError: If a numeric variable cannot be parsed
    """
    defaults = PipelineConfig()

    languages_raw = os.getenv("DEVTREND_LANGUAGES")
    languages = defaults.languages
    if languages_raw is not None:
        languages = tuple(
            lang.strip().lower() for lang in languages_raw.split(",") if lang.strip()
        )

    max_attempts = int(
        _env_number("DEVTREND_RETRY_MAX_ATTEMPTS", defaults.retry_max_attempts, int)
    )
    if max_attempts < 1:
        raise ConfigurationError("DEVTREND_RETRY_MAX_ATTEMPTS must be at least 1")

    return PipelineConfig(
        cache_ttl_seconds=int(
            _env_number("DEVTREND_CACHE_TTL_SECONDS", defaults.cache_ttl_seconds, int)
        ),
        min_repo_count=int(
            _env_number("DEVTREND_MIN_REPO_COUNT", defaults.min_repo_count, int)
        ),
        min_post_count=int(
            _env_number("DEVTREND_MIN_POST_COUNT", defaults.min_post_count, int)
        ),
        use_static_fallback=os.getenv("DEVTREND_USE_STATIC_FALLBACK", "true").lower()
        not in ("0", "false", "no"),
        health_ttl_seconds=int(
            _env_number("DEVTREND_HEALTH_TTL_SECONDS", defaults.health_ttl_seconds, int)
        ),
        retry_max_attempts=max_attempts,
        retry_base_delay=float(
            _env_number("DEVTREND_RETRY_BASE_DELAY", defaults.retry_base_delay, float)
        ),
        inter_request_delay=float(
            _env_number(
                "DEVTREND_INTER_REQUEST_DELAY", defaults.inter_request_delay, float
            )
        ),
        languages=languages,
        retention_weeks=int(
            _env_number("DEVTREND_RETENTION_WEEKS", defaults.retention_weeks, int)
        ),
    )


# Categories
CATEGORY_REPOS = "repos"
CATEGORY_POSTS = "posts"

# Storage backends
STORAGE_BACKEND_DYNAMODB = "dynamodb"
STORAGE_BACKEND_FILESYSTEM = "filesystem"

# Constants for the storage key space
KEY_PREFIX_TREND_REPORT = "trend:"
KEY_PREFIX_CACHE = "cache:"
KEY_STORAGE_METADATA = "meta:storage"
DYNAMODB_PK_PREFIX = "NS#"
STORAGE_METADATA_VERSION = "1.0"

# Cache settings
CACHE_TTL_SECONDS = 6 * 60 * 60  # 6 hours

# HTTP settings
USER_AGENT = "DevTrend-TrendBot/1.0 (+https://github.com/devtrend/devtrend-pipeline)"
REQUEST_TIMEOUT = 30
HEALTH_CHECK_TIMEOUT = 5

# Report limits
MAX_OVERALL_REPOS = 25
MAX_REPOS_PER_LANGUAGE = 15
MAX_DEVELOPER_TOOLS = 10
MAX_REPORT_POSTS = 20
MAX_EMERGING_TOPICS = 15
TOPIC_HISTORY_WEEKS = 4
