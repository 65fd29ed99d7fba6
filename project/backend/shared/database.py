"""
Database client.

Supabase PostgreSQL client wrapper with async execution and retry.
"""

import asyncio
from typing import Any, Callable

from supabase import create_client, Client
from shared.config import Settings
from shared.errors import RetryableError, ConfigError
from shared.logging import get_logger
from shared.retry import with_retry

logger = get_logger("database")


class DatabaseClient:
    """Supabase database client wrapper with retry logic."""

    def __init__(self, settings: Settings):
        """
        Initialize database client with the service-role key.

        Raises:
            ConfigError: If Supabase is not configured
        """
        if not settings.supabase_configured:
            raise ConfigError("SUPABASE_URL and SUPABASE_SERVICE_KEY are required for the database client")
        try:
            self.client: Client = create_client(
                settings.supabase_url,
                settings.supabase_service_key
            )
        except Exception as e:
            raise ConfigError(f"Failed to initialize database client: {str(e)}") from e

    async def _execute_sync(self, func: Callable[[], Any], max_attempts: int = 3) -> Any:
        """
        Execute a synchronous Supabase operation in an async context.

        Args:
            func: Synchronous function to execute
            max_attempts: Maximum number of attempts

        Returns:
            Function result

        Raises:
            RetryableError: If operation fails after all retries
        """
        async def _attempt():
            loop = asyncio.get_running_loop()
            try:
                return await loop.run_in_executor(None, func)
            except Exception as e:
                raise RetryableError(f"Database operation failed: {str(e)}") from e

        return await with_retry(_attempt, max_attempts=max_attempts, base_delay=2, name="database")

    def table(self, table_name: str) -> "AsyncTableQueryBuilder":
        """
        Get a table query builder with async execution support.

        Args:
            table_name: Name of the table
        """
        return AsyncTableQueryBuilder(self, table_name)

    async def health_check(self) -> bool:
        """Check database connection health."""
        try:
            await self._execute_sync(
                lambda: self.client.table("jobs").select("id").limit(1).execute(),
                max_attempts=1
            )
            return True
        except RetryableError as e:
            logger.warning("Database health check failed", extra={"error": str(e)})
            return False


class AsyncTableQueryBuilder:
    """Async wrapper for Supabase table query builder."""

    def __init__(self, db_client: DatabaseClient, table_name: str):
        """Initialize async table query builder."""
        self.db_client = db_client
        self.table_name = table_name
        self._query_builder = db_client.client.table(table_name)

    def select(self, *args, **kwargs):
        """Chain select operation."""
        self._query_builder = self._query_builder.select(*args, **kwargs)
        return self

    def insert(self, *args, **kwargs):
        """Chain insert operation."""
        self._query_builder = self._query_builder.insert(*args, **kwargs)
        return self

    def update(self, *args, **kwargs):
        """Chain update operation."""
        self._query_builder = self._query_builder.update(*args, **kwargs)
        return self

    def eq(self, *args, **kwargs):
        """Chain eq filter."""
        self._query_builder = self._query_builder.eq(*args, **kwargs)
        return self

    def in_(self, *args, **kwargs):
        """Chain in filter."""
        self._query_builder = self._query_builder.in_(*args, **kwargs)
        return self

    def limit(self, *args, **kwargs):
        """Chain limit operation."""
        self._query_builder = self._query_builder.limit(*args, **kwargs)
        return self

    async def execute(self, max_attempts: int = 3) -> Any:
        """
        Execute the query asynchronously.

        Args:
            max_attempts: Maximum number of attempts
        """
        query_builder = self._query_builder
        return await self.db_client._execute_sync(
            lambda: query_builder.execute(),
            max_attempts
        )
