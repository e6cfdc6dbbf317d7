"""
Task Service
============

Operations behind the HTTP routes. Checks the owner key, delegates to the
repository and lets taxonomy errors propagate for the API layer to map.

Author: jetgause
Created: 2025-12-10
"""

import logging
from typing import List, Optional

from taskboard_core.database import DatabaseConfig, DatabaseManager
from taskboard_core.errors import ValidationError
from taskboard_core.models import SchemaReport, TaskFields, TaskRecord
from taskboard_core.repository import TaskRepository
from taskboard_core.schema import LayoutPolicy, SchemaDetector, build_layout_policy

logger = logging.getLogger(__name__)


class TaskService:
    """Owner-scoped task operations"""

    def __init__(
        self,
        repository: TaskRepository,
        detector: Optional[SchemaDetector] = None,
    ):
        self.repository = repository
        self.detector = detector or repository.layout_policy.detector

    @property
    def layout_policy(self) -> LayoutPolicy:
        return self.repository.layout_policy

    @staticmethod
    def _owner(owner_key: Optional[str]) -> str:
        if owner_key is None or not str(owner_key).strip():
            raise ValidationError("Owner identifier is required")
        return str(owner_key)

    # ==================== Task Operations ====================

    def list_tasks(self, owner_key: str) -> List[TaskRecord]:
        return self.repository.list_for_owner(self._owner(owner_key))

    def get_task(self, owner_key: str, task_id: int) -> TaskRecord:
        return self.repository.get_for_owner(self._owner(owner_key), task_id)

    def create_task(self, owner_key: str, fields: TaskFields) -> TaskRecord:
        return self.repository.create_for_owner(self._owner(owner_key), fields)

    def update_task(self, owner_key: str, task_id: int, fields: TaskFields) -> None:
        self.repository.update_for_owner(self._owner(owner_key), task_id, fields)

    def delete_task(self, owner_key: str, task_id: int) -> None:
        self.repository.delete_for_owner(self._owner(owner_key), task_id)

    def toggle_status(self, owner_key: str, task_id: int) -> TaskRecord:
        """
        Flip completed <-> pending (in_progress completes).

        Read-modify-write without a concurrency token; the last writer wins.
        """
        owner_key = self._owner(owner_key)
        record = self.repository.get_for_owner(owner_key, task_id)
        fields = record.fields()
        fields.status = record.status.toggled()
        self.repository.update_for_owner(owner_key, task_id, fields)
        return record.model_copy(update={"status": fields.status})

    # ==================== Schema Operations ====================

    def prime(self) -> bool:
        """Resolve the layout ahead of the first request; logs instead of raising"""
        try:
            layout = self.layout_policy.resolve()
        except Exception as e:
            logger.error(f"Task table layout could not be resolved at startup: {e}")
            return False
        logger.info(f"Serving tasks with {layout.value} layout ({self.layout_policy.name} policy)")
        return True

    def schema_report(self) -> SchemaReport:
        return self.detector.describe(self.layout_policy)

    def refresh_schema(self) -> SchemaReport:
        """Drop the cached layout after an operator fixed the table"""
        self.layout_policy.invalidate()
        self.prime()
        return self.schema_report()


def build_task_service(
    database_url: str,
    table_name: str = 'items',
    schema_layout: str = 'auto',
    pool_size: int = 5,
    echo: bool = False,
) -> TaskService:
    """Wire database, detector, layout policy and repository together"""
    db_manager = DatabaseManager(DatabaseConfig(
        database_url=database_url,
        table_name=table_name,
        pool_size=pool_size,
        echo=echo,
    ))
    db_manager.initialize()
    detector = SchemaDetector(db_manager)
    policy = build_layout_policy(detector, schema_layout)
    return TaskService(TaskRepository(db_manager, policy), detector)
