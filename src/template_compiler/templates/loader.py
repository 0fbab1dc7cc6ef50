"""
Backing store for template files.
"""
import logging
from pathlib import Path
from typing import List, Protocol, Union, runtime_checkable

import aiofiles

from ..error.exceptions import ErrorContext, TemplateNotFoundError

logger = logging.getLogger(__name__)

@runtime_checkable
class TemplateSource(Protocol):
    """Protocol for reading template files by identifier."""

    async def read_all(self, template_id: str) -> bytes:
        """
        Read the raw bytes of a template.

        Args:
            template_id: Normalized template identifier

        Returns:
            File content

        Raises:
            TemplateNotFoundError: if the template cannot be read
        """
        ...

    def exists(self, template_id: str) -> bool:
        ...

    def is_dir(self, template_id: str) -> bool:
        ...

    def list_children(self, template_id: str = "") -> List[str]:
        ...

class FileSystemLoader:
    """Reads templates from a directory tree."""

    def __init__(self, root: Union[str, Path]):
        """
        Initialize the loader.

        Args:
            root: Template root directory
        """
        self.root = Path(root)

    def _path(self, template_id: str) -> Path:
        return self.root / template_id

    async def read_all(self, template_id: str) -> bytes:
        path = self._path(template_id)
        logger.debug(f"Reading template file: {path}")
        try:
            async with aiofiles.open(path, mode='rb') as f:
                return await f.read()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError, PermissionError) as e:
            raise TemplateNotFoundError(
                template_id,
                message=f"Template not found: {template_id} ({e.strerror or e})",
                context=ErrorContext("FileSystemLoader", "read_all", path=str(path))
            ) from e

    def exists(self, template_id: str) -> bool:
        return self._path(template_id).is_file()

    def is_dir(self, template_id: str) -> bool:
        return self._path(template_id).is_dir()

    def list_children(self, template_id: str = "") -> List[str]:
        """
        List the direct children of a directory.

        Args:
            template_id: Directory identifier, empty for the root

        Returns:
            Sorted child identifiers
        """
        directory = self._path(template_id) if template_id else self.root
        return sorted(
            child.relative_to(self.root).as_posix()
            for child in directory.iterdir()
        )

