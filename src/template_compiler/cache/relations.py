"""
Include relations between templates, used to cascade invalidation.
"""
import logging
from typing import Dict, List, Set

from .stores import CompiledStore

logger = logging.getLogger(__name__)

class RelationGraph:
    """
    Directed graph from an included template to every template that includes it.
    """

    def __init__(self):
        self._parents: Dict[str, Set[str]] = {}

    def add_edge(self, child: str, parent: str) -> None:
        """
        Record that ``parent`` embeds the content of ``child``.

        Args:
            child: Identifier of the included template
            parent: Identifier of the including template
        """
        self._parents.setdefault(child, set()).add(parent)

    def parents_of(self, child: str) -> Set[str]:
        """
        Get the templates that directly include ``child``.

        Args:
            child: Identifier of the included template

        Returns:
            Copy of the parent set, empty if no relation was recorded
        """
        return set(self._parents.get(child, ()))

    def invalidate_cascade(self, template_id: str, compiled: CompiledStore) -> List[str]:
        """
        Drop the compiled entry of every template that transitively includes ``template_id``.

        Each ancestor is visited once per call, so diamond-shaped and cyclic
        graphs are walked in linear time.

        Args:
            template_id: Identifier whose dependents must be recompiled
            compiled: Store holding the compiled entries to drop

        Returns:
            Invalidated ancestors in visit order
        """
        visited: List[str] = []
        seen: Set[str] = {template_id}
        pending = sorted(self._parents.get(template_id, ()))

        while pending:
            parent = pending.pop()
            if parent in seen:
                continue
            seen.add(parent)
            visited.append(parent)
            compiled.remove(parent)
            pending.extend(sorted(self._parents.get(parent, ())))

        if visited:
            logger.debug(f"Invalidated {len(visited)} dependents of {template_id}: {visited}")
        return visited

    def remove_node(self, template_id: str) -> None:
        """Forget the parent set recorded for ``template_id``."""
        self._parents.pop(template_id, None)

    def edges(self) -> List[tuple]:
        """All (child, parent) pairs, sorted."""
        return sorted(
            (child, parent)
            for child, parents in self._parents.items()
            for parent in parents
        )

    def clear(self) -> None:
        self._parents.clear()

    def __len__(self) -> int:
        return len(self._parents)
