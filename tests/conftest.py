"""Shared fixtures: task services bound to throwaway SQLite databases."""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from taskboard_core.database import SchemaLayout
from tests.helpers import make_service, run_sql


@pytest.fixture(params=[SchemaLayout.LEGACY, SchemaLayout.CURRENT], ids=["legacy", "current"])
def service(request, tmp_path):
    svc = make_service(tmp_path, request.param)
    yield svc
    svc.repository.db_manager.close()


@pytest.fixture
def unrecognized_service(tmp_path):
    """Service whose task table has no recognized owner column"""
    svc = make_service(tmp_path)
    run_sql(
        svc,
        "CREATE TABLE items (ItemId INTEGER PRIMARY KEY AUTOINCREMENT, "
        "Titre TEXT NOT NULL, Statut TEXT, Owner TEXT)",
    )
    yield svc
    svc.repository.db_manager.close()
