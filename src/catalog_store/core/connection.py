"""Database connection management with SQLAlchemy."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from catalog_store.models.config import DatabaseConfig

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """Manages the SQLAlchemy async engine and its connection pool."""

    def __init__(self, config: DatabaseConfig):
        """
        Initialize database connection.

        Args:
            config: Database configuration with connection target and pool settings
        """
        self.config = config
        self.engine: Optional[AsyncEngine] = None
        self._lifecycle_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Create the async engine; a second or concurrent call is a no-op."""
        async with self._lifecycle_lock:
            if self.engine is None:
                self._create_engine()

    def _create_engine(self) -> None:
        connect_args: dict = {"timeout": self.config.connect_timeout}
        ssl = self.config.ssl
        if ssl is not None:
            connect_args["ssl"] = ssl
        if self.config.statement_timeout:
            connect_args["server_settings"] = {
                "statement_timeout": str(self.config.statement_timeout * 1000)
            }

        self.engine = create_async_engine(
            self.config.sqlalchemy_url,
            pool_size=self.config.pool_size,
            max_overflow=self.config.max_overflow,
            pool_timeout=self.config.pool_timeout,
            pool_recycle=self.config.pool_recycle,
            pool_pre_ping=True,  # Verify connections before using
            echo=self.config.echo_sql,
            connect_args=connect_args,
        )
        logger.info(
            "Connection pool created for %s (size=%d, overflow=%d, timeout=%ds)",
            self.config.database_name,
            self.config.pool_size,
            self.config.max_overflow,
            self.config.pool_timeout,
        )

    async def dispose(self) -> None:
        """Dispose of the connection pool and cleanup resources."""
        async with self._lifecycle_lock:
            if self.engine is not None:
                await self.engine.dispose()
                self.engine = None
                logger.info("Connection pool disposed")

    def _require_engine(self) -> AsyncEngine:
        if self.engine is None:
            raise RuntimeError(
                "DatabaseConnection not initialized. Call initialize() first."
            )
        return self.engine

    @asynccontextmanager
    async def get_connection(
        self, autocommit: bool = True
    ) -> AsyncGenerator[AsyncConnection, None]:
        """
        Get a connection from the pool as an async context manager.

        The connection goes back to the pool when the block exits, whether it
        exits normally or with an exception.

        Args:
            autocommit: Commit each statement on its own. With False the caller
                owns the transaction and must commit explicitly.

        Yields:
            AsyncConnection for executing statements

        Raises:
            RuntimeError: If engine not initialized
        """
        engine = self._require_engine()

        async with engine.connect() as conn:
            if autocommit:
                conn = await conn.execution_options(isolation_level="AUTOCOMMIT")
            yield conn

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncConnection, None]:
        """
        Run a block of statements atomically on one pooled connection.

        Issues BEGIN on entry, COMMIT when the block exits normally and
        ROLLBACK when it raises; the exception is re-raised.

        Yields:
            AsyncConnection bound to the open transaction

        Raises:
            RuntimeError: If engine not initialized
        """
        engine = self._require_engine()

        async with engine.connect() as conn:
            async with conn.begin():
                yield conn

    @property
    def dialect(self) -> str:
        """Get database dialect name."""
        return self.config.dialect

    @property
    def driver(self) -> str:
        """Get database driver name."""
        return self.config.driver

    @property
    def is_initialized(self) -> bool:
        """Check if engine is initialized."""
        return self.engine is not None

    async def test_connection(self) -> bool:
        """
        Test database connectivity.

        Returns:
            True if connection successful, False otherwise
        """
        try:
            async with self.get_connection() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning("Connection test failed: %s", e)
            return False

    async def get_version(self) -> str:
        """
        Get database version string.

        Returns:
            Database version string
        """
        async with self.get_connection() as conn:
            result = await conn.execute(text("SELECT version()"))
            row = result.fetchone()
            return str(row[0]) if row else "Unknown"

    async def __aenter__(self) -> "DatabaseConnection":
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.dispose()
