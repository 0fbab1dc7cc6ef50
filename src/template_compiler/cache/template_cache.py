"""
Dependency-aware template cache.
"""
import logging
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel

from .relations import RelationGraph
from .stores import CompiledStore, ContentStore

logger = logging.getLogger(__name__)

Version = Tuple[int, int]

class CacheStats(BaseModel):
    """Snapshot of cache occupancy."""
    sources: int = 0
    compiled: int = 0
    relations: int = 0

class TemplateCache:
    """
    Source text, compiled render functions and include relations for one compiler.

    A compiled entry stays valid only while none of the sources it was built
    from has been invalidated; invalidating a source drops the compiled entry
    of every template that includes it, transitively.

    Each template also has a version that changes whenever it is invalidated.
    Readers take the version before an await and store results only when it
    is still current, so text fetched before an invalidation never lands in
    the cache after it.
    """

    def __init__(self):
        self.sources = ContentStore()
        self.compiled = CompiledStore()
        self.relations = RelationGraph()
        self._epoch = 0
        self._versions: Dict[str, int] = {}

    def version(self, template_id: str) -> Version:
        """Current version of a template, changed by every invalidation reaching it."""
        return self._epoch, self._versions.get(template_id, 0)

    def is_current(self, versions: Dict[str, Version]) -> bool:
        """True when none of the given templates was invalidated since its version was taken."""
        return all(self.version(template_id) == version for template_id, version in versions.items())

    def get_source_text(self, template_id: str) -> Optional[str]:
        return self.sources.get(template_id)

    def set_source_text(self, template_id: str, text: str) -> None:
        self.sources.set(template_id, text)

    def get_compiled(self, template_id: str) -> Optional[Any]:
        return self.compiled.get(template_id)

    def set_compiled(self, template_id: str, compiled: Any) -> None:
        self.compiled.set(template_id, compiled)

    def add_relation(self, child: str, parent: str) -> None:
        self.relations.add_edge(child, parent)

    def invalidate_one(self, template_id: str) -> None:
        """
        Invalidate a template and everything that includes it.

        Args:
            template_id: Normalized template identifier
        """
        self._versions[template_id] = self._versions.get(template_id, 0) + 1
        self.sources.remove(template_id)
        self.compiled.remove(template_id)
        self.relations.invalidate_cascade(template_id, self.compiled)
        self.relations.remove_node(template_id)

    def invalidate_all(self) -> None:
        """Invalidate every template, including ones still being fetched."""
        self._epoch += 1
        template_ids = self.sources.ids()
        for template_id in template_ids:
            self.invalidate_one(template_id)
        logger.debug(f"Invalidated {len(template_ids)} cached templates")

    def clear(self) -> None:
        """Drop all cached state."""
        self._epoch += 1
        self._versions.clear()
        self.sources.clear()
        self.compiled.clear()
        self.relations.clear()

    def stats(self) -> CacheStats:
        return CacheStats(
            sources=len(self.sources),
            compiled=len(self.compiled),
            relations=len(self.relations)
        )
