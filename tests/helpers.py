"""Helpers for building task services over throwaway SQLite databases."""

from sqlalchemy import text

from taskboard_core.service import build_task_service


def make_service(tmp_path, layout=None, schema_layout="auto"):
    """Service over a fresh database, provisioned with ``layout`` if given"""
    service = build_task_service(
        database_url=f"sqlite:///{tmp_path / 'tasks.db'}",
        schema_layout=schema_layout,
    )
    if layout is not None:
        service.repository.db_manager.provision(layout)
    return service


def run_sql(service, *statements):
    """Execute raw DDL/DML against the service's database"""
    with service.repository.db_manager.connect() as conn:
        for statement in statements:
            conn.execute(text(statement))
