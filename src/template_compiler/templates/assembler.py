"""
Include resolution: flattens a template and its includes into one source.
"""
import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..cache import TemplateCache
from ..cache.template_cache import Version
from ..error.exceptions import CircularIncludeError, ErrorContext
from .identifiers import is_stylesheet, is_template, normalize_template_id
from .loader import TemplateSource
from .minifier import shrink_stylesheet

logger = logging.getLogger(__name__)

INCLUDE_PATTERN = re.compile(r'<%\s*include\s+[\'"](.+?)[\'"]\s*%>')

class TemplateAssembler:
    """
    Reads templates through the cache and inlines every include directive.

    Every resolved include records a (child, parent) relation, including
    includes served from the cache, so invalidating a leaf always reaches
    each template that embeds it.
    """

    def __init__(self, root: Union[str, Path], source: TemplateSource, cache: TemplateCache):
        """
        Initialize the assembler.

        Args:
            root: Template root directory
            source: Backing store for template files
            cache: Cache receiving source text and relations
        """
        self.root = root
        self.source = source
        self.cache = cache

    async def read(
        self,
        template_id: str,
        parent: Optional[str] = None,
        versions: Optional[Dict[str, Version]] = None
    ) -> str:
        """
        Read a template and recursively inline its includes.

        Args:
            template_id: Normalized template identifier
            parent: Identifier of the including template, if any
            versions: Receives the cache version of every template read

        Returns:
            Flattened template source

        Raises:
            TemplateNotFoundError: if the template or an include target is missing
            CircularIncludeError: if a template includes itself
        """
        if versions is None:
            versions = {}
        return await self._read(template_id, parent, [], versions)

    async def _read(
        self,
        template_id: str,
        parent: Optional[str],
        chain: List[str],
        versions: Dict[str, Version]
    ) -> str:
        if template_id in chain:
            raise CircularIncludeError(
                chain[chain.index(template_id):] + [template_id],
                context=ErrorContext("TemplateAssembler", "read")
            )

        if parent:
            self.cache.add_relation(template_id, parent)

        version = self.cache.version(template_id)
        versions.setdefault(template_id, version)

        text = self.cache.get_source_text(template_id)
        if text is None:
            text = await self._fetch(template_id)
            if self.cache.version(template_id) == version:
                self.cache.set_source_text(template_id, text)
            else:
                logger.debug(f"{template_id} invalidated while loading, text not cached")

        if not is_template(template_id):
            return text

        chain = chain + [template_id]
        parts = []
        position = 0
        for match in INCLUDE_PATTERN.finditer(text):
            child_id = normalize_template_id(self.root, match.group(1))
            parts.append(text[position:match.start()])
            parts.append(await self._read(child_id, template_id, chain, versions))
            position = match.end()

        if not parts:
            return text

        parts.append(text[position:])
        return "".join(parts)

    async def _fetch(self, template_id: str) -> str:
        raw = await self.source.read_all(template_id)
        text = raw.decode("utf-8")
        if is_stylesheet(template_id):
            text = shrink_stylesheet(text)
        logger.debug(f"Loaded {template_id} ({len(text)} chars)")
        return text
