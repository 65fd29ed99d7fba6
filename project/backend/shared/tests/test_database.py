"""
Tests for database client.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock, Mock, patch

import pytest

from shared.config import Settings
from shared.database import AsyncTableQueryBuilder, DatabaseClient
from shared.errors import ConfigError, RetryableError


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        log_dir="",
        supabase_url="https://test.supabase.co",
        supabase_service_key="service-key",
    )


@pytest.fixture
def mock_supabase_client():
    """Create a mock Supabase client."""
    return MagicMock()


@pytest.fixture
def db_client(settings, mock_supabase_client):
    """Create a database client with mocked Supabase."""
    with patch("shared.database.create_client", return_value=mock_supabase_client):
        return DatabaseClient(settings)


def test_database_client_initialization(settings):
    """Test that database client initializes with the service key."""
    with patch("shared.database.create_client") as mock_create:
        client = DatabaseClient(settings)

    assert client.client is mock_create.return_value
    mock_create.assert_called_once_with("https://test.supabase.co", "service-key")


def test_database_client_requires_configuration():
    """Test that ConfigError is raised without Supabase credentials."""
    with pytest.raises(ConfigError):
        DatabaseClient(Settings(_env_file=None, log_dir="", supabase_url="", supabase_service_key=""))


def test_database_client_initialization_failure(settings):
    """Test that client creation errors become ConfigError."""
    with patch("shared.database.create_client", side_effect=Exception("bad url")):
        with pytest.raises(ConfigError, match="bad url"):
            DatabaseClient(settings)


@pytest.mark.asyncio
async def test_execute_sync_returns_result(db_client):
    """Test that sync operations run in the executor."""
    result = await db_client._execute_sync(lambda: "rows")

    assert result == "rows"


@pytest.mark.asyncio
async def test_execute_sync_wraps_failures(db_client):
    """Test that operation failures become RetryableError."""
    def failing():
        raise Exception("connection reset")

    with pytest.raises(RetryableError, match="connection reset"):
        await db_client._execute_sync(failing, max_attempts=1)


@pytest.mark.asyncio
async def test_table_chain(db_client, mock_supabase_client):
    """Test that chained calls reach the Supabase builder."""
    builder = mock_supabase_client.table.return_value
    builder.select.return_value = builder
    builder.eq.return_value = builder
    builder.limit.return_value = builder
    builder.execute.return_value = SimpleNamespace(data=[{"id": "job-1"}])

    query = db_client.table("jobs").select("*").eq("id", "job-1").limit(1)
    result = await query.execute()

    assert isinstance(query, AsyncTableQueryBuilder)
    assert result.data == [{"id": "job-1"}]
    mock_supabase_client.table.assert_called_with("jobs")
    builder.eq.assert_called_once_with("id", "job-1")


@pytest.mark.asyncio
async def test_health_check(db_client, mock_supabase_client):
    """Test health check success and failure."""
    assert await db_client.health_check() is True

    mock_supabase_client.table.side_effect = Exception("down")
    assert await db_client.health_check() is False
