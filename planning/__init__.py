"""Planning package: hierarchy resolution and export path planning.

Package Structure:
- hierarchy_walker: Depth-first walk over the declared notebook hierarchy
- export_planner: Computes notebook directories and unique note paths
"""

from .hierarchy_walker import HierarchyWalker
from .export_planner import (
    ExportPlanner,
    find_orphan_notebooks,
    normalize_notebook_name,
    plan_library,
    sanitize_note_title
)

__all__ = [
    'HierarchyWalker',
    'ExportPlanner',
    'find_orphan_notebooks',
    'normalize_notebook_name',
    'plan_library',
    'sanitize_note_title'
]
