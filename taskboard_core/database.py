"""
Taskboard Core Database Module
==============================

Engine and connection management for the task store, plus the two historical
definitions of the ``items`` table.

Features:
- SQLAlchemy Core table definitions for both owner-column layouts
- Connection pooling with configurable limits
- One transaction per operation with automatic rollback
- Query logging for monitoring
- Table provisioning for development and tests

Author: jetgause
Created: 2025-12-10
"""

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Dict, Iterator, Optional

from sqlalchemy import (
    Column,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
)
from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)

# Statement logger, kept separate so it can be silenced independently
query_logger = logging.getLogger('taskboard.sql')


# ============================================================================
# TABLE LAYOUTS
# ============================================================================

# Physical column names shared by both layouts
ITEM_ID = 'ItemId'
TITLE = 'Titre'
DESCRIPTION = 'Description'
STATUS = 'Statut'
DUE_DATE = 'DateLimite'
PRIORITY = 'Priorite'

LEGACY_OWNER = 'Responsable'
CURRENT_OWNER = 'UserId'
CURRENT_OWNER_EMAIL = 'UserEmail'


class SchemaLayout(str, Enum):
    """Owner-column convention in effect on the task table"""
    LEGACY = "legacy"
    CURRENT = "current"

    @property
    def owner_column(self) -> str:
        if self is SchemaLayout.LEGACY:
            return LEGACY_OWNER
        return CURRENT_OWNER

    @property
    def mirror_columns(self) -> tuple:
        """Extra columns that receive a copy of the owner key on insert"""
        if self is SchemaLayout.CURRENT:
            return (CURRENT_OWNER_EMAIL,)
        return ()


def _common_columns():
    return [
        Column(ITEM_ID, Integer, primary_key=True, autoincrement=True),
        Column(TITLE, String(255), nullable=False),
        Column(DESCRIPTION, Text, nullable=True),
        Column(STATUS, String(20), nullable=False, default='pending'),
        Column(DUE_DATE, String(10), nullable=True),
        Column(PRIORITY, String(20), nullable=False, default='medium'),
    ]


def build_items_table(layout: SchemaLayout, table_name: str = 'items') -> Table:
    """
    Build the Core table definition for a layout.

    Each layout gets its own MetaData since both describe the same physical
    table name.
    """
    metadata = MetaData()
    owner_columns = [Column(layout.owner_column, String(255), nullable=False, index=True)]
    owner_columns += [Column(name, String(255), nullable=True) for name in layout.mirror_columns]
    return Table(table_name, metadata, *_common_columns(), *owner_columns)


# ============================================================================
# DATABASE CONNECTION AND POOLING
# ============================================================================

class DatabaseConfig:
    """Database configuration with secure defaults"""

    def __init__(
        self,
        database_url: str,
        table_name: str = 'items',
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_timeout: int = 30,
        pool_recycle: int = 3600,
        echo: bool = False,
    ):
        self.database_url = database_url
        self.table_name = table_name
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_timeout = pool_timeout
        self.pool_recycle = pool_recycle
        self.echo = echo

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith('sqlite')


class DatabaseManager:
    """
    Database manager with connection pooling and transaction management.

    The task table itself is never created here: its layout is whatever the
    deployment provisioned. Use ``provision()`` for development databases.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.engine: Optional[Engine] = None
        self._tables: Dict[SchemaLayout, Table] = {}
        self._initialized = False

    @property
    def table_name(self) -> str:
        return self.config.table_name

    def initialize(self):
        """Initialize the engine and attach query logging"""
        if self._initialized:
            logger.warning("DatabaseManager already initialized")
            return

        try:
            engine_kwargs = {'echo': self.config.echo}
            if self.config.is_sqlite:
                # Route handlers run in a thread pool
                engine_kwargs['connect_args'] = {'check_same_thread': False}
            else:
                engine_kwargs.update(
                    pool_size=self.config.pool_size,
                    max_overflow=self.config.max_overflow,
                    pool_timeout=self.config.pool_timeout,
                    pool_recycle=self.config.pool_recycle,
                    pool_pre_ping=True,
                )
            self.engine = create_engine(self.config.database_url, **engine_kwargs)

            self._setup_event_listeners()

            self._initialized = True
            logger.info(f"Database initialized ({self.engine.url.get_backend_name()})")

        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            raise

    def _setup_event_listeners(self):
        """Set up SQLAlchemy event listeners for query logging"""

        @event.listens_for(self.engine, "before_cursor_execute")
        def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            query_logger.debug(f"Query: {statement}")
            query_logger.debug(f"Parameters: {parameters}")

        @event.listens_for(self.engine, "handle_error")
        def handle_error(exception_context):
            query_logger.error(
                f"Database error: {exception_context.original_exception}"
            )

    def table(self, layout: SchemaLayout) -> Table:
        """Core table definition for the given layout (cached)"""
        if layout not in self._tables:
            self._tables[layout] = build_items_table(layout, self.table_name)
        return self._tables[layout]

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        """
        Context manager yielding a connection inside a transaction.

        Commits on success, rolls back and re-raises on error.

        Usage:
            with db_manager.connect() as conn:
                rows = conn.execute(select(table)).all()
        """
        if not self._initialized:
            raise RuntimeError("DatabaseManager not initialized. Call initialize() first.")

        with self.engine.begin() as conn:
            yield conn

    def provision(self, layout: SchemaLayout):
        """Create the task table with the given layout if it does not exist"""
        if not self._initialized:
            self.initialize()
        table = self.table(layout)
        table.metadata.create_all(self.engine)
        logger.info(f"Provisioned table '{self.table_name}' with {layout.value} layout")

    def close(self):
        """
        Close pooled database connections.

        The engine stays usable: the next ``connect()`` opens a fresh pool, so
        an app can be started again on the same manager.
        """
        if self.engine:
            self.engine.dispose()
            logger.info("Database connection pool disposed")
