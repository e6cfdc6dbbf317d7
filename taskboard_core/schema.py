"""
Schema Detection
================

Works out which owner-column layout the task table uses and exposes the
result through a LayoutPolicy, so repositories never inspect the table
themselves.

Policies:
- DetectedLayoutPolicy: introspect once, cache until invalidated
- PinnedLayoutPolicy: layout fixed by configuration, verified once

Author: jetgause
Created: 2025-12-10
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import List, Optional, Union

from sqlalchemy import inspect
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError

from taskboard_core.database import (
    CURRENT_OWNER,
    CURRENT_OWNER_EMAIL,
    LEGACY_OWNER,
    DatabaseManager,
    SchemaLayout,
)
from taskboard_core.errors import ConfigurationError, TransientStoreError
from taskboard_core.models import SchemaReport

logger = logging.getLogger(__name__)

__all__ = [
    "SchemaLayout",
    "SchemaDetector",
    "LayoutPolicy",
    "DetectedLayoutPolicy",
    "PinnedLayoutPolicy",
    "build_layout_policy",
]


class SchemaDetector:
    """Reads the live column set of the task table"""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    def columns(self) -> List[str]:
        """Column names of the task table, empty if the table is missing"""
        try:
            inspector = inspect(self.db_manager.engine)
            return [col['name'] for col in inspector.get_columns(self.db_manager.table_name)]
        except NoSuchTableError:
            return []
        except SQLAlchemyError as e:
            raise TransientStoreError.from_exception("read the task table structure", e)

    @staticmethod
    def layout_for(columns: List[str]) -> SchemaLayout:
        """
        Pick the layout for a column set.

        Legacy wins when both owner columns exist (mid-migration tables).

        Raises:
            ConfigurationError: neither owner column is present
        """
        names = set(columns)
        if LEGACY_OWNER in names:
            return SchemaLayout.LEGACY
        if CURRENT_OWNER in names:
            return SchemaLayout.CURRENT
        raise ConfigurationError(columns)

    def detect(self) -> SchemaLayout:
        columns = self.columns()
        layout = self.layout_for(columns)
        logger.debug(f"Detected {layout.value} layout for '{self.db_manager.table_name}'")
        return layout

    def describe(self, policy: Optional["LayoutPolicy"] = None) -> SchemaReport:
        """Diagnostic snapshot of the table and the layout it maps to"""
        columns = self.columns()
        try:
            layout = self.layout_for(columns).value
        except ConfigurationError:
            layout = None
        return SchemaReport(
            table=self.db_manager.table_name,
            columns=columns,
            has_responsable=LEGACY_OWNER in columns,
            has_user_id=CURRENT_OWNER in columns,
            has_user_email=CURRENT_OWNER_EMAIL in columns,
            layout=layout,
            policy=policy.name if policy else None,
        )


# ============================================================================
# LAYOUT POLICIES
# ============================================================================

class LayoutPolicy(ABC):
    """Source of the layout every data operation runs against"""

    name = "abstract"

    def __init__(self, detector: SchemaDetector):
        self.detector = detector

    @abstractmethod
    def resolve(self) -> SchemaLayout:
        """Return the layout to use, or raise ConfigurationError"""

    def invalidate(self):
        """Forget any cached result"""


class DetectedLayoutPolicy(LayoutPolicy):
    """
    Detect the layout from the live table and cache it process-wide.

    A ConfigurationError is cached as well: a table without a recognized
    owner column needs an operator, so it is only re-checked after
    invalidate(). Store failures are not cached.
    """

    name = "auto"

    def __init__(self, detector: SchemaDetector):
        super().__init__(detector)
        self._lock = threading.Lock()
        self._cached: Optional[Union[SchemaLayout, ConfigurationError]] = None

    def resolve(self) -> SchemaLayout:
        cached = self._cached
        if cached is None:
            with self._lock:
                if self._cached is None:
                    try:
                        self._cached = self.detector.detect()
                        logger.info(f"Task table layout: {self._cached.value}")
                    except ConfigurationError as e:
                        logger.error(f"No recognized owner column: {e.details}")
                        self._cached = e
                cached = self._cached

        if isinstance(cached, ConfigurationError):
            raise ConfigurationError(cached.columns)
        return cached

    def invalidate(self):
        with self._lock:
            self._cached = None
        logger.info("Cached task table layout invalidated")


class PinnedLayoutPolicy(LayoutPolicy):
    """Layout fixed by configuration, checked once against the live table"""

    def __init__(self, detector: SchemaDetector, layout: SchemaLayout):
        super().__init__(detector)
        self.layout = layout
        self.name = layout.value
        self._verified = False

    def resolve(self) -> SchemaLayout:
        if not self._verified:
            columns = self.detector.columns()
            if self.layout.owner_column not in columns:
                raise ConfigurationError(
                    columns,
                    message=f"Configured {self.layout.value} layout requires column "
                            f"'{self.layout.owner_column}'",
                )
            self._verified = True
        return self.layout

    def invalidate(self):
        self._verified = False


def build_layout_policy(detector: SchemaDetector, setting: str = "auto") -> LayoutPolicy:
    """Map a SCHEMA_LAYOUT setting to a policy"""
    setting = (setting or "auto").strip().lower()
    if setting == "auto":
        return DetectedLayoutPolicy(detector)
    try:
        return PinnedLayoutPolicy(detector, SchemaLayout(setting))
    except ValueError:
        raise ValueError(f"Unknown schema layout setting: {setting!r}")
