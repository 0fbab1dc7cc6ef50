"""
Dependency-aware cache: source text, compiled templates and include relations.
"""

from .stores import KeyedStore, ContentStore, CompiledStore
from .relations import RelationGraph
from .template_cache import TemplateCache, CacheStats

__all__ = [
    'KeyedStore',
    'ContentStore',
    'CompiledStore',
    'RelationGraph',
    'TemplateCache',
    'CacheStats',
]
