"""
Jinja2 adapter compiling flattened template source into render functions.

Templates use ``<% ... %>`` for statements, ``<%= ... %>`` for output and
``<%# ... %>`` for comments.
"""
import json
import logging
import os
from typing import Any, Dict, Optional

import jinja2

from ..error.exceptions import ErrorContext, TemplateCompileError

logger = logging.getLogger(__name__)

class CompiledTemplate:
    """Render function produced by :class:`TemplateEngine`."""

    def __init__(self, template: jinja2.Template, source: str, template_id: Optional[str] = None):
        self.template = template
        self.source = source
        self.template_id = template_id

    def __call__(self, data: Optional[Dict[str, Any]] = None) -> str:
        """
        Render the template.

        Args:
            data: Rendering context

        Returns:
            Rendered text
        """
        return self.template.render(data or {})

    def __repr__(self) -> str:
        return f"<CompiledTemplate {self.template_id or '<string>'}>"

class TemplateEngine:
    """Compiles template source with Jinja2."""

    def __init__(self, **options):
        """
        Initialize the engine.

        Args:
            **options: Extra keyword arguments for the Jinja2 environment
        """
        settings = {
            "block_start_string": "<%",
            "block_end_string": "%>",
            "variable_start_string": "<%=",
            "variable_end_string": "%>",
            "comment_start_string": "<%#",
            "comment_end_string": "%>",
            "keep_trailing_newline": True,
            "autoescape": False,
        }
        settings.update(options)
        self.env = jinja2.Environment(**settings)

        # Add custom filters
        self.env.filters["to_json"] = lambda v: json.dumps(v)
        self.env.filters["basename"] = lambda p: os.path.basename(p) if p else ""
        self.env.filters["dirname"] = lambda p: os.path.dirname(p) if p else ""

    def compile_template(self, source: str, template_id: Optional[str] = None) -> CompiledTemplate:
        """
        Compile template source into a render function.

        Args:
            source: Flattened template source
            template_id: Identifier used in error messages

        Returns:
            Compiled template

        Raises:
            TemplateCompileError: if Jinja2 rejects the source
        """
        try:
            template = self.env.from_string(source)
        except jinja2.TemplateSyntaxError as e:
            logger.error(f"Template compile error in {template_id or '<string>'}: {e}")
            raise TemplateCompileError(
                f"Template compile error at line {e.lineno}: {e.message}",
                template_id=template_id,
                context=ErrorContext("TemplateEngine", "compile_template")
            ) from e

        return CompiledTemplate(template, source, template_id)
