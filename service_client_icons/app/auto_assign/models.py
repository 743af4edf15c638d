"""
Auto-assignment data models.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..conditions.models import Condition


@dataclass(frozen=True)
class Tag:
    """An icon as seen by the reconciler; no condition means manual-only."""
    id: str
    condition: Optional[Condition] = None


@dataclass(frozen=True)
class Assignment:
    """Persisted link between a client and an icon."""
    tag_id: str
    is_auto_assigned: bool
    client_id: Optional[str] = None


@dataclass(frozen=True)
class AssignmentDiff:
    """Icons to auto-assign to and unassign from one client."""
    to_add: Tuple[str, ...] = ()
    to_remove: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove


@dataclass(frozen=True)
class TagAssignmentDiff:
    """Clients to auto-assign one icon to and unassign it from."""
    tag_id: str
    to_add: Tuple[str, ...] = ()
    to_remove: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove


@dataclass
class AutoAssignOutcome:
    """Result of reconciling and applying assignments for one client."""
    client_id: str
    diff: AssignmentDiff = field(default_factory=AssignmentDiff)
    applied: bool = False
    error: Optional[str] = None


@dataclass
class RecomputeReport:
    """Summary of a bulk recompute over many clients."""
    company_id: str
    outcomes: List[AutoAssignOutcome] = field(default_factory=list)

    @property
    def added(self) -> int:
        return sum(len(o.diff.to_add) for o in self.outcomes if o.applied)

    @property
    def removed(self) -> int:
        return sum(len(o.diff.to_remove) for o in self.outcomes if o.applied)

    @property
    def failed(self) -> List[str]:
        return [o.client_id for o in self.outcomes if o.error is not None]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "company_id": self.company_id,
            "clients": len(self.outcomes),
            "added": self.added,
            "removed": self.removed,
            "failed": self.failed,
        }
