"""
Taskboard Test Suite

Tests for the task data access layer, the HTTP routes, the identity helpers
and the API client.

Author: jetgause
Created: 2025-12-10
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
test_dir = Path(__file__).parent
project_root = test_dir.parent
sys.path.insert(0, str(project_root))

__version__ = "1.0.0"
__all__ = []
