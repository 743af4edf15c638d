"""
Reconciliation of auto-assigned icons against their conditions.

The reconciler computes what should change and never writes: callers
apply the returned diff inside their own transaction. Recomputing from the
full desired set on every run keeps retries safe.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..conditions.evaluator import ConditionEvaluator
from .models import Assignment, AssignmentDiff, Tag, TagAssignmentDiff


class AutoAssignReconciler:
    """Diffs desired auto-assignments against the persisted ones."""

    def __init__(self, evaluator: Optional[ConditionEvaluator] = None):
        self.evaluator = evaluator or ConditionEvaluator()

    def matching_tag_ids(self, record: Any, tags: Iterable[Tag]) -> List[str]:
        """Ids of tags whose condition matches the record, in input order."""
        matched: Dict[str, None] = {}
        for tag in tags:
            if tag.condition is None:
                continue
            if self.evaluator.evaluate(record, tag.condition):
                matched[tag.id] = None
        return list(matched)

    def reconcile(
        self,
        record: Any,
        tags: Iterable[Tag],
        current_assignments: Iterable[Assignment]
    ) -> AssignmentDiff:
        """Compute icons to add and remove for one client.

        Manually assigned icons are left out in both directions.
        """
        desired = self.matching_tag_ids(record, tags)

        current_auto: Dict[str, None] = {}
        manual = set()
        for assignment in current_assignments:
            if assignment.is_auto_assigned:
                current_auto[assignment.tag_id] = None
            else:
                manual.add(assignment.tag_id)

        desired_set = set(desired)
        to_add = tuple(
            tag_id for tag_id in desired
            if tag_id not in current_auto and tag_id not in manual
        )
        to_remove = tuple(
            tag_id for tag_id in current_auto
            if tag_id not in desired_set
        )
        return AssignmentDiff(to_add=to_add, to_remove=to_remove)

    def reconcile_tag(
        self,
        tag: Tag,
        clients: Mapping[str, Any],
        assignments: Iterable[Assignment]
    ) -> TagAssignmentDiff:
        """Compute clients to add and remove for one icon.

        Used when an icon's condition changes. Without a condition every
        auto-assignment of the icon is removed.
        """
        auto_clients: Dict[str, None] = {}
        manual_clients = set()
        for assignment in assignments:
            if assignment.tag_id != tag.id or assignment.client_id is None:
                continue
            if assignment.is_auto_assigned:
                auto_clients[assignment.client_id] = None
            else:
                manual_clients.add(assignment.client_id)

        if tag.condition is None:
            return TagAssignmentDiff(
                tag_id=tag.id,
                to_remove=tuple(auto_clients)
            )

        to_add: List[str] = []
        to_remove: List[str] = []
        for client_id, record in clients.items():
            matches = self.evaluator.evaluate(record, tag.condition)
            if matches:
                if client_id not in auto_clients and client_id not in manual_clients:
                    to_add.append(client_id)
            elif client_id in auto_clients:
                to_remove.append(client_id)

        return TagAssignmentDiff(tag_id=tag.id, to_add=tuple(to_add), to_remove=tuple(to_remove))


_default_reconciler = AutoAssignReconciler()


def reconcile(
    record: Any,
    tags: Iterable[Tag],
    current_assignments: Iterable[Assignment]
) -> AssignmentDiff:
    """Reconcile one client with the shared stateless reconciler."""
    return _default_reconciler.reconcile(record, tags, current_assignments)


def reconcile_tag(
    tag: Tag,
    clients: Mapping[str, Any],
    assignments: Iterable[Assignment]
) -> TagAssignmentDiff:
    """Reconcile one icon across clients with the shared stateless reconciler."""
    return _default_reconciler.reconcile_tag(tag, clients, assignments)
