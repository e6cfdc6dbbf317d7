"""
Task Repository
===============

Owner-scoped CRUD against the task table. Every operation resolves the
active layout first and filters on that layout's owner column, so a row is
only ever visible to the owner key it was created with.

Author: jetgause
Created: 2025-12-10
"""

import logging
from datetime import date
from typing import Any, Dict, List

from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import Row
from sqlalchemy.exc import SQLAlchemyError

from taskboard_core.database import (
    DESCRIPTION,
    DUE_DATE,
    ITEM_ID,
    PRIORITY,
    STATUS,
    TITLE,
    DatabaseManager,
    SchemaLayout,
)
from taskboard_core.errors import NotFound, TransientStoreError, ValidationError
from taskboard_core.models import (
    TaskFields,
    TaskPriority,
    TaskRecord,
    TaskStatus,
    parse_due_date,
)
from taskboard_core.schema import LayoutPolicy

logger = logging.getLogger(__name__)

# Audit trail for owner-scoped mutations
audit_logger = logging.getLogger('audit.tasks')


class TaskRepository:
    """Layout-aware data access for task records"""

    def __init__(self, db_manager: DatabaseManager, layout_policy: LayoutPolicy):
        self.db_manager = db_manager
        self.layout_policy = layout_policy

    # ---- helpers ----

    def _table(self):
        layout = self.layout_policy.resolve()
        return layout, self.db_manager.table(layout)

    @staticmethod
    def _validate(fields: TaskFields) -> str:
        title = (fields.title or "").strip()
        if not title:
            raise ValidationError("Title is required")
        return title

    @staticmethod
    def _values(title: str, fields: TaskFields) -> Dict[str, Any]:
        return {
            TITLE: title,
            DESCRIPTION: fields.description or "",
            STATUS: TaskStatus(fields.status).value,
            DUE_DATE: fields.due_date.isoformat() if fields.due_date else None,
            PRIORITY: TaskPriority(fields.priority).value,
        }

    @staticmethod
    def _row_to_record(row: Row, layout: SchemaLayout) -> TaskRecord:
        data = row._mapping
        return TaskRecord(
            id=int(data[ITEM_ID]),
            title=str(data[TITLE] or ""),
            description=str(data[DESCRIPTION] or ""),
            status=TaskStatus.from_db(data[STATUS]),
            due_date=parse_due_date(data[DUE_DATE]),
            priority=TaskPriority.from_db(data[PRIORITY]),
            owner_key=str(data[layout.owner_column]),
        )

    # ---- public API ----

    def list_for_owner(self, owner_key: str) -> List[TaskRecord]:
        """
        All tasks for an owner, earliest due date first.

        Tasks without a due date sort last; ties keep creation order.
        """
        layout, table = self._table()
        query = (
            select(table)
            .where(table.c[layout.owner_column] == owner_key)
            .order_by(table.c[ITEM_ID].asc())
        )
        try:
            with self.db_manager.connect() as conn:
                rows = conn.execute(query).all()
        except SQLAlchemyError as e:
            raise TransientStoreError.from_exception("list tasks", e)

        logger.debug(f"Found {len(rows)} tasks for owner={owner_key!r} ({layout.value})")
        records = [self._row_to_record(row, layout) for row in rows]
        # Sorted after parsing: legacy rows hold '' or non-ISO strings that read as no date
        records.sort(key=lambda r: (r.due_date is None, r.due_date or date.max, r.id))
        return records

    def get_for_owner(self, owner_key: str, task_id: int) -> TaskRecord:
        layout, table = self._table()
        query = select(table).where(
            table.c[ITEM_ID] == task_id,
            table.c[layout.owner_column] == owner_key,
        )
        try:
            with self.db_manager.connect() as conn:
                row = conn.execute(query).first()
        except SQLAlchemyError as e:
            raise TransientStoreError.from_exception("fetch the task", e)

        if row is None:
            raise NotFound()
        return self._row_to_record(row, layout)

    def create_for_owner(self, owner_key: str, fields: TaskFields) -> TaskRecord:
        """
        Insert a task for an owner.

        Under the current layout the owner key is written to both UserId and
        UserEmail.

        Raises:
            ValidationError: title is empty or whitespace
        """
        title = self._validate(fields)
        layout, table = self._table()

        values = self._values(title, fields)
        values[layout.owner_column] = owner_key
        for column in layout.mirror_columns:
            values[column] = owner_key

        try:
            with self.db_manager.connect() as conn:
                result = conn.execute(insert(table).values(**values))
                task_id = int(result.inserted_primary_key[0])
        except SQLAlchemyError as e:
            raise TransientStoreError.from_exception("create the task", e)

        audit_logger.info(f"Task {task_id} created for owner={owner_key!r} ({layout.value})")
        return TaskRecord(
            id=task_id,
            title=title,
            description=values[DESCRIPTION],
            status=values[STATUS],
            due_date=fields.due_date,
            priority=values[PRIORITY],
            owner_key=owner_key,
        )

    def update_for_owner(self, owner_key: str, task_id: int, fields: TaskFields) -> None:
        """Overwrite every mutable field in a single scoped UPDATE"""
        title = self._validate(fields)
        layout, table = self._table()

        statement = (
            update(table)
            .where(
                table.c[ITEM_ID] == task_id,
                table.c[layout.owner_column] == owner_key,
            )
            .values(**self._values(title, fields))
        )
        try:
            with self.db_manager.connect() as conn:
                result = conn.execute(statement)
                matched = result.rowcount
        except SQLAlchemyError as e:
            raise TransientStoreError.from_exception("update the task", e)

        if matched == 0:
            raise NotFound()
        audit_logger.info(f"Task {task_id} updated by owner={owner_key!r}")

    def delete_for_owner(self, owner_key: str, task_id: int) -> None:
        layout, table = self._table()
        statement = delete(table).where(
            table.c[ITEM_ID] == task_id,
            table.c[layout.owner_column] == owner_key,
        )
        try:
            with self.db_manager.connect() as conn:
                result = conn.execute(statement)
                matched = result.rowcount
        except SQLAlchemyError as e:
            raise TransientStoreError.from_exception("delete the task", e)

        if matched == 0:
            raise NotFound()
        audit_logger.info(f"Task {task_id} deleted by owner={owner_key!r}")
