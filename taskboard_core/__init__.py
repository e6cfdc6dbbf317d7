"""
Taskboard Core Module
=====================

Owner-scoped task storage for the Taskboard API, tolerant of both historical
layouts of the task table.

Author: jetgause
Version: 1.0.0
"""

__version__ = "1.0.0"
__all__ = ["TaskService", "build_task_service", "models", "errors"]

from taskboard_core.service import TaskService, build_task_service
from taskboard_core import models, errors
