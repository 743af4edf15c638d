"""
Collaborator interfaces for loading icons and persisting assignments.

Production implementations live with the ORM layer; the in-memory ones
here back tests and local tooling.
"""

import asyncio
from typing import Any, Dict, List, Optional, Protocol, Tuple

from shared.errors import AssignmentStoreError
from shared.logging import get_logger
from ..conditions.parser import ConditionParser
from .models import Assignment, AssignmentDiff, Tag, TagAssignmentDiff


class TagSource(Protocol):
    """Loads a company's active icons that carry an auto-assign condition."""

    async def list_auto_assign_tags(self, company_id: str) -> List[Tag]:
        ...


class AssignmentStore(Protocol):
    """Reads and writes client icon assignments.

    apply_* must be idempotent: adding an existing link or removing a
    missing one is a no-op, and manual links are never removed.
    """

    async def list_assignments(self, client_id: str) -> List[Assignment]:
        ...

    async def list_tag_assignments(self, tag_id: str) -> List[Assignment]:
        ...

    async def apply_diff(self, client_id: str, diff: AssignmentDiff) -> None:
        ...

    async def apply_tag_diff(self, diff: TagAssignmentDiff) -> None:
        ...


class InMemoryTagSource:
    """Tag source holding parsed icons per company."""

    def __init__(self, parser: Optional[ConditionParser] = None):
        self.parser = parser or ConditionParser()
        self._tags: Dict[str, Dict[str, Tag]] = {}

    def put(self, company_id: str, tag_id: str, condition_payload: Any = None) -> Tag:
        """Store an icon, parsing its stored condition payload."""
        tag = Tag(id=tag_id, condition=self.parser.parse(condition_payload))
        self._tags.setdefault(company_id, {})[tag_id] = tag
        return tag

    async def list_auto_assign_tags(self, company_id: str) -> List[Tag]:
        return [
            tag for tag in self._tags.get(company_id, {}).values()
            if tag.condition is not None
        ]


class InMemoryAssignmentStore:
    """Assignment store keyed by (client_id, tag_id); one link per pair."""

    def __init__(self):
        self.logger = get_logger("client_icons.auto_assign.store")
        self._links: Dict[Tuple[str, str], Assignment] = {}
        self._lock = asyncio.Lock()

    def assign_manually(self, client_id: str, tag_id: str) -> Assignment:
        """Record a manual link, as the icons UI would."""
        assignment = Assignment(tag_id=tag_id, is_auto_assigned=False, client_id=client_id)
        self._links[(client_id, tag_id)] = assignment
        return assignment

    def snapshot(self) -> List[Assignment]:
        return list(self._links.values())

    async def list_assignments(self, client_id: str) -> List[Assignment]:
        return [a for (cid, _), a in self._links.items() if cid == client_id]

    async def list_tag_assignments(self, tag_id: str) -> List[Assignment]:
        return [a for (_, tid), a in self._links.items() if tid == tag_id]

    async def apply_diff(self, client_id: str, diff: AssignmentDiff) -> None:
        if not client_id:
            raise AssignmentStoreError("Client id is required", {"diff": repr(diff)})
        async with self._lock:
            for tag_id in diff.to_add:
                self._add_auto(client_id, tag_id)
            for tag_id in diff.to_remove:
                self._remove_auto(client_id, tag_id)
        self.logger.debug(
            "Applied assignment diff",
            client_id=client_id,
            added=len(diff.to_add),
            removed=len(diff.to_remove)
        )

    async def apply_tag_diff(self, diff: TagAssignmentDiff) -> None:
        async with self._lock:
            for client_id in diff.to_add:
                self._add_auto(client_id, diff.tag_id)
            for client_id in diff.to_remove:
                self._remove_auto(client_id, diff.tag_id)

    def _add_auto(self, client_id: str, tag_id: str) -> None:
        key = (client_id, tag_id)
        if key in self._links:
            # Existing manual or auto link wins
            return
        self._links[key] = Assignment(tag_id=tag_id, is_auto_assigned=True, client_id=client_id)

    def _remove_auto(self, client_id: str, tag_id: str) -> None:
        key = (client_id, tag_id)
        existing = self._links.get(key)
        if existing is None or not existing.is_auto_assigned:
            return
        del self._links[key]
