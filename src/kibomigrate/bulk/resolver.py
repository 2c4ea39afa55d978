"""Parent/child resolution components for bulk create batches.

Template items reference their parent by human-readable name, while the API
wants the parent's remotely assigned id. Parents are created first and their
ids recorded in a ``ParentIndex``; children are then created with the
resolved id attached.

Classes:
    ResolutionResult: Result of a name lookup
    ParentIndex: Name -> assigned id mapping for one batch run
    HierarchyResolver: Two-pass (roots, then children) create driver
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..errors import DependencyCycleError
from ..logging_config import get_logger
from .batch import BatchExecutor, BatchOutcome, Item, ItemAccessor, Operation, _accessor

logger = get_logger(__name__)


@dataclass
class ResolutionResult:
    """Result of a name resolution operation."""

    success: bool
    resolved_value: Optional[Any] = None
    error_message: Optional[str] = None


class ParentIndex:
    """Maps item names to the ids assigned by the remote system."""

    def __init__(self):
        self._ids: Dict[str, Any] = {}

    def record(self, name: Optional[str], assigned_id: Any) -> None:
        if not name or assigned_id is None:
            return
        self._ids[name] = assigned_id

    def lookup(self, name: str) -> ResolutionResult:
        if name in self._ids:
            return ResolutionResult(success=True, resolved_value=self._ids[name])
        return ResolutionResult(success=False, error_message=f"Parent not found: '{name}'")

    def __contains__(self, name: object) -> bool:
        return name in self._ids

    def __len__(self) -> int:
        return len(self._ids)


def category_name(item: Item) -> Optional[str]:
    """Name of a category, which the API nests under ``content``."""
    content = item.get("content") or {}
    return content.get("name")


class HierarchyResolver:
    """Creates parents before the children that reference them by name."""

    def __init__(
        self,
        name_of: ItemAccessor = category_name,
        parent_name_of: ItemAccessor = "parentCategoryName",
        parent_id_field: str = "parentCategoryId",
        id_of: ItemAccessor = "id",
    ):
        """Initialize the resolver.

        Args:
            name_of: Name of an item, used as the ParentIndex key
            parent_name_of: Parent reference name of an item (empty for roots)
            parent_id_field: Field that receives the resolved parent id
            id_of: Assigned id in the created item returned by the API
        """
        self.name_of = _accessor(name_of)
        self.parent_name_of = _accessor(parent_name_of)
        self.parent_id_field = parent_id_field
        self.id_of = _accessor(id_of)
        self.index = ParentIndex()

    def partition(self, items: Sequence[Item]) -> Tuple[List[Item], List[Item]]:
        """Split items into roots and children, keeping the original order."""
        roots = [item for item in items if not self.parent_name_of(item)]
        children = [item for item in items if self.parent_name_of(item)]
        return roots, children

    def _record_created(self, item: Item, created: Any) -> None:
        name = None
        assigned_id = None
        if isinstance(created, dict):
            name = self.name_of(created)
            assigned_id = self.id_of(created)
        self.index.record(name or self.name_of(item), assigned_id)

    async def run(
        self,
        items: Sequence[Item],
        create: Operation,
        executor: BatchExecutor,
        outcome: Optional[BatchOutcome] = None,
        operation_name: str = "create",
        collection: str = "",
    ) -> BatchOutcome:
        """Create roots, then children with their parent id attached.

        Children whose parent name is not in the index are recorded as failed
        and ``create`` is never invoked for them.
        """
        if outcome is None:
            outcome = executor.new_outcome(operation_name, collection)
        outcome.mark_started()
        self.index = ParentIndex()

        roots, children = self.partition(items)

        logger.info("Creating top-level items", extra={"count": len(roots)})
        for index, item in enumerate(roots):
            result = await executor.process_item(item, create, outcome, index, len(roots))
            if result.status == "success":
                self._record_created(item, result.value)

        logger.info("Creating child items", extra={"count": len(children)})
        for index, item in enumerate(children):
            parent_name = self.parent_name_of(item)
            resolution = self.index.lookup(parent_name)
            if not resolution.success:
                executor.fail(item, resolution.error_message, outcome, index)
                continue

            resolved_item = {**item, self.parent_id_field: resolution.resolved_value}
            result = await executor.process_item(
                resolved_item, create, outcome, index, len(children)
            )
            if result.status == "success":
                # Lets a grandchild listed later in the child pass find its parent
                self._record_created(item, result.value)

        outcome.mark_finished()
        return outcome


def topological_order(
    items: Sequence[Item],
    name_of: ItemAccessor = category_name,
    parent_name_of: ItemAccessor = "parentCategoryName",
) -> List[Item]:
    """Order items so every parent precedes its children, at any depth.

    Items keep their relative order where the hierarchy allows it. A parent
    name that does not belong to ``items`` is not an error here; the child is
    placed as-is and the two-pass lookup reports it.

    Raises:
        DependencyCycleError: If parent references form a cycle
    """
    get_name: Callable[[Item], Any] = _accessor(name_of)
    get_parent: Callable[[Item], Any] = _accessor(parent_name_of)

    by_name: Dict[str, Item] = {}
    for item in items:
        name = get_name(item)
        if name and name not in by_name:
            by_name[name] = item

    ordered: List[Item] = []
    state: Dict[int, str] = {}

    def visit(item: Item, path: List[str]) -> None:
        marker = state.get(id(item))
        if marker == "done":
            return
        if marker == "visiting":
            raise DependencyCycleError(path + [str(get_name(item))])

        state[id(item)] = "visiting"
        parent_name = get_parent(item)
        if parent_name and parent_name in by_name:
            visit(by_name[parent_name], path + [str(get_name(item))])
        state[id(item)] = "done"
        ordered.append(item)

    for item in items:
        visit(item, [])

    return ordered
