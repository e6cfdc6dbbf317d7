"""
Task Repository Tests
=====================

Owner-scoped CRUD against both table layouts, ordering, legacy value
tolerance, and error wrapping.

Created: 2025-12-11
Author: jetgause
"""

from datetime import date

import pytest
from sqlalchemy import select

from taskboard_core.database import SchemaLayout
from taskboard_core.errors import (
    ConfigurationError,
    NotFound,
    TransientStoreError,
    ValidationError,
)
from taskboard_core.models import TaskFields, TaskPriority, TaskStatus
from tests.helpers import make_service, run_sql


# ============================================================================
# CRUD TESTS
# ============================================================================

class TestTaskCrud:
    """Create/read/update/delete for a single owner."""

    def test_create_then_get(self, service):
        repo = service.repository
        created = repo.create_for_owner("u1", TaskFields(title="  Buy milk  "))

        fetched = repo.get_for_owner("u1", created.id)
        assert fetched.title == "Buy milk"
        assert fetched.owner_key == "u1"
        assert fetched.status == TaskStatus.PENDING
        assert fetched.priority == TaskPriority.MEDIUM
        assert fetched.description == ""
        assert fetched.due_date is None

    def test_create_echoes_fields(self, service):
        record = service.repository.create_for_owner(
            "u1",
            TaskFields(title="Report", description="Q3", priority="high", due_date="2025-12-20"),
        )
        assert record.id > 0
        assert record.priority == TaskPriority.HIGH
        assert record.due_date == date(2025, 12, 20)
        assert record.description == "Q3"

    @pytest.mark.parametrize("title", ["", "   ", "\t\n"])
    def test_create_rejects_blank_title(self, service, title):
        repo = service.repository
        with pytest.raises(ValidationError):
            repo.create_for_owner("u1", TaskFields(title=title))
        assert repo.list_for_owner("u1") == []

    def test_update_then_get(self, service):
        repo = service.repository
        created = repo.create_for_owner("u1", TaskFields(title="Draft"))

        repo.update_for_owner("u1", created.id, TaskFields(
            title="Final",
            description="ship it",
            status="in_progress",
            due_date="2026-01-02",
            priority="urgent",
        ))

        fetched = repo.get_for_owner("u1", created.id)
        assert fetched.id == created.id
        assert fetched.owner_key == "u1"
        assert fetched.title == "Final"
        assert fetched.description == "ship it"
        assert fetched.status == TaskStatus.IN_PROGRESS
        assert fetched.due_date == date(2026, 1, 2)
        assert fetched.priority == TaskPriority.URGENT

    def test_update_clears_due_date(self, service):
        repo = service.repository
        created = repo.create_for_owner("u1", TaskFields(title="A", due_date="2025-01-01"))
        repo.update_for_owner("u1", created.id, TaskFields(title="A"))
        assert repo.get_for_owner("u1", created.id).due_date is None

    def test_update_rejects_blank_title(self, service):
        repo = service.repository
        created = repo.create_for_owner("u1", TaskFields(title="Keep"))
        with pytest.raises(ValidationError):
            repo.update_for_owner("u1", created.id, TaskFields(title=" "))
        assert repo.get_for_owner("u1", created.id).title == "Keep"

    def test_delete_then_get(self, service):
        repo = service.repository
        created = repo.create_for_owner("u1", TaskFields(title="Temp"))
        repo.delete_for_owner("u1", created.id)

        with pytest.raises(NotFound):
            repo.get_for_owner("u1", created.id)
        with pytest.raises(NotFound):
            repo.delete_for_owner("u1", created.id)

    def test_missing_id(self, service):
        repo = service.repository
        with pytest.raises(NotFound):
            repo.get_for_owner("u1", 999)
        with pytest.raises(NotFound):
            repo.update_for_owner("u1", 999, TaskFields(title="x"))
        with pytest.raises(NotFound):
            repo.delete_for_owner("u1", 999)


# ============================================================================
# OWNERSHIP TESTS
# ============================================================================

class TestOwnership:
    """Rows are invisible and immutable to other owners."""

    def test_cross_owner_access_is_not_found(self, service):
        repo = service.repository
        created = repo.create_for_owner("alice", TaskFields(title="Private"))

        with pytest.raises(NotFound):
            repo.get_for_owner("bob", created.id)
        with pytest.raises(NotFound):
            repo.update_for_owner("bob", created.id, TaskFields(title="Hijacked"))
        with pytest.raises(NotFound):
            repo.delete_for_owner("bob", created.id)

        # Untouched for the real owner
        assert repo.get_for_owner("alice", created.id).title == "Private"

    def test_list_is_owner_scoped(self, service):
        repo = service.repository
        repo.create_for_owner("alice", TaskFields(title="A1"))
        repo.create_for_owner("alice", TaskFields(title="A2"))
        repo.create_for_owner("bob", TaskFields(title="B1"))

        assert [t.title for t in repo.list_for_owner("alice")] == ["A1", "A2"]
        assert [t.title for t in repo.list_for_owner("bob")] == ["B1"]
        assert repo.list_for_owner("carol") == []

    def test_list_orders_by_due_date_nulls_last(self, service):
        repo = service.repository
        repo.create_for_owner("u1", TaskFields(title="no date"))
        repo.create_for_owner("u1", TaskFields(title="later", due_date="2026-03-01"))
        repo.create_for_owner("u1", TaskFields(title="sooner", due_date="2025-11-30"))
        repo.create_for_owner("u1", TaskFields(title="also no date"))

        titles = [t.title for t in repo.list_for_owner("u1")]
        assert titles == ["sooner", "later", "no date", "also no date"]


class TestLayoutSpecifics:
    """Physical column handling per layout."""

    def test_current_layout_mirrors_owner_into_email(self, tmp_path):
        svc = make_service(tmp_path, SchemaLayout.CURRENT)
        repo = svc.repository
        created = repo.create_for_owner("principal-42", TaskFields(title="Mirror"))

        table = svc.repository.db_manager.table(SchemaLayout.CURRENT)
        with svc.repository.db_manager.connect() as conn:
            row = conn.execute(select(table).where(table.c.ItemId == created.id)).one()
        assert row.UserId == "principal-42"
        assert row.UserEmail == "principal-42"

    def test_legacy_layout_writes_responsable(self, tmp_path):
        svc = make_service(tmp_path, SchemaLayout.LEGACY)
        created = svc.repository.create_for_owner("principal-7", TaskFields(title="Old"))

        table = svc.repository.db_manager.table(SchemaLayout.LEGACY)
        with svc.repository.db_manager.connect() as conn:
            row = conn.execute(select(table).where(table.c.ItemId == created.id)).one()
        assert row.Responsable == "principal-7"

    def test_reads_rows_written_by_old_client(self, tmp_path):
        svc = make_service(tmp_path, SchemaLayout.LEGACY)
        run_sql(
            svc,
            "INSERT INTO items (Titre, Description, Statut, DateLimite, Priorite, Responsable) "
            "VALUES ('Vieux', NULL, 'pending', '', 'moyenne', 'u1')",
            "INSERT INTO items (Titre, Description, Statut, DateLimite, Priorite, Responsable) "
            "VALUES ('Urgent', 'x', 'weird', '2025-02-30', 'urgente', 'u1')",
            "INSERT INTO items (Titre, Description, Statut, DateLimite, Priorite, Responsable) "
            "VALUES ('Format US', '', 'pending', '12/31/2025', 'basse', 'u1')",
            "INSERT INTO items (Titre, Description, Statut, DateLimite, Priorite, Responsable) "
            "VALUES ('Daté', '', 'pending', '2025-06-01', 'haute', 'u1')",
        )

        records = svc.repository.list_for_owner("u1")
        assert len(records) == 4
        # Unreadable dates sort with the undated rows, in insertion order
        assert [r.title for r in records] == ["Daté", "Vieux", "Urgent", "Format US"]
        assert records[0].due_date == date(2025, 6, 1)
        assert records[3].due_date is None
        by_title = {r.title: r for r in records}
        assert by_title["Vieux"].priority == TaskPriority.MEDIUM
        assert by_title["Vieux"].due_date is None
        assert by_title["Vieux"].description == ""
        assert by_title["Urgent"].priority == TaskPriority.URGENT
        assert by_title["Urgent"].status == TaskStatus.PENDING
        assert by_title["Urgent"].due_date is None


# ============================================================================
# ERROR TESTS
# ============================================================================

class TestRepositoryErrors:
    """Configuration and store failures propagate as taxonomy errors."""

    def test_every_operation_reports_configuration_error(self, unrecognized_service):
        repo = unrecognized_service.repository
        operations = [
            lambda: repo.list_for_owner("u1"),
            lambda: repo.get_for_owner("u1", 1),
            lambda: repo.create_for_owner("u1", TaskFields(title="x")),
            lambda: repo.update_for_owner("u1", 1, TaskFields(title="x")),
            lambda: repo.delete_for_owner("u1", 1),
        ]
        for operation in operations:
            with pytest.raises(ConfigurationError) as exc_info:
                operation()
            assert "Owner" in exc_info.value.details

    def test_store_failure_is_wrapped(self, tmp_path):
        svc = make_service(tmp_path, SchemaLayout.LEGACY)
        svc.layout_policy.resolve()
        # Layout is cached, so the missing table only surfaces at query time
        run_sql(svc, "DROP TABLE items")

        with pytest.raises(TransientStoreError) as exc_info:
            svc.repository.list_for_owner("u1")
        assert exc_info.value.status_code == 500
        assert "no such table" in exc_info.value.details
