"""
Auto-assignment package.

Keeps icon assignments on client records in sync with the icons'
auto-assign conditions.

Modules of interest:
- models: Tags, assignments and the diffs computed between them.
- reconciler: Pure diff of desired versus persisted auto-assignments.
- store: Collaborator protocols plus in-memory implementations.
- service: Async orchestration of reconcile and write-back.
"""

from .models import (
    Assignment, AssignmentDiff, AutoAssignOutcome, RecomputeReport, Tag,
    TagAssignmentDiff
)
from .reconciler import AutoAssignReconciler, reconcile, reconcile_tag
from .service import AutoAssignService
from .store import (
    AssignmentStore, InMemoryAssignmentStore, InMemoryTagSource, TagSource
)

__all__ = [
    "Assignment",
    "AssignmentDiff",
    "AutoAssignOutcome",
    "RecomputeReport",
    "Tag",
    "TagAssignmentDiff",
    "AutoAssignReconciler",
    "reconcile",
    "reconcile_tag",
    "AutoAssignService",
    "AssignmentStore",
    "InMemoryAssignmentStore",
    "InMemoryTagSource",
    "TagSource",
]
