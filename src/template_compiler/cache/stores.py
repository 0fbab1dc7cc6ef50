"""
Keyed stores for template source text and compiled render functions.
"""
import logging
from typing import Any, Dict, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')

class KeyedStore(Generic[T]):
    """
    Mapping from template identifier to a cached value.

    All operations are total: reading or removing a missing key is not an error.
    """

    def __init__(self, name: str):
        self.name = name
        self._entries: Dict[str, T] = {}

    def get(self, template_id: str) -> Optional[T]:
        """
        Get a cached value by template identifier.

        Args:
            template_id: Normalized template identifier

        Returns:
            Cached value or None if not present
        """
        return self._entries.get(template_id)

    def set(self, template_id: str, value: T) -> None:
        """
        Insert or overwrite a cached value.

        Args:
            template_id: Normalized template identifier
            value: Value to cache
        """
        self._entries[template_id] = value

    def remove(self, template_id: str) -> None:
        """Remove a cached value if present."""
        if self._entries.pop(template_id, None) is not None:
            logger.debug(f"Removed {template_id} from {self.name} store")

    def ids(self) -> List[str]:
        """Snapshot of the identifiers currently stored."""
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, template_id: str) -> bool:
        return template_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

class ContentStore(KeyedStore[str]):
    """Raw template text as read from the backing store (stylesheets already shrunk)."""

    def __init__(self):
        super().__init__("content")

class CompiledStore(KeyedStore[Any]):
    """Compiled render functions keyed by template identifier."""

    def __init__(self):
        super().__init__("compiled")
