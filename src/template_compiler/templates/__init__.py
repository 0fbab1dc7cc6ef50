"""
Template reading, include flattening, directive-safe minification and compilation.
"""

from .identifiers import normalize_template_id, is_template, is_stylesheet
from .loader import TemplateSource, FileSystemLoader
from .assembler import TemplateAssembler
from .minifier import DirectiveSafeMinifier, shrink_script, shrink_stylesheet
from .engine import TemplateEngine, CompiledTemplate

__all__ = [
    'normalize_template_id',
    'is_template',
    'is_stylesheet',
    'TemplateSource',
    'FileSystemLoader',
    'TemplateAssembler',
    'DirectiveSafeMinifier',
    'shrink_script',
    'shrink_stylesheet',
    'TemplateEngine',
    'CompiledTemplate',
]
