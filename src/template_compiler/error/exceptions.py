"""
Centralized exception definitions for the template compiler.
"""
from typing import List, Optional

class ErrorContext:
    """Context information for errors."""

    def __init__(self, component: str = None, operation: str = None, **kwargs):
        self.component = component
        self.operation = operation
        self.details = kwargs

class TemplateCompilerError(Exception):
    """Base class for all template compiler errors."""

    def __init__(self, message: str, context: ErrorContext = None, details: dict = None):
        super().__init__(message)
        self.context = context or ErrorContext()
        self.details = details or {}

    def __str__(self):
        base_str = super().__str__()
        if self.context.component and self.context.operation:
            return f"{base_str} [in {self.context.component}.{self.context.operation}]"
        return base_str

class ConfigurationError(TemplateCompilerError):
    """Error in configuration."""
    pass

class TemplateNotFoundError(TemplateCompilerError):
    """A template or include target could not be read from the backing store."""

    def __init__(self, template_id: str, message: str = None, context: ErrorContext = None):
        super().__init__(
            message or f"Template not found: {template_id}",
            context=context,
            details={"template_id": template_id}
        )
        self.template_id = template_id

class CircularIncludeError(TemplateCompilerError):
    """A template includes itself, directly or through other templates."""

    def __init__(self, chain: List[str], context: ErrorContext = None):
        super().__init__(
            "Circular include: " + " -> ".join(chain),
            context=context,
            details={"chain": list(chain)}
        )
        self.chain = list(chain)

class TemplateCompileError(TemplateCompilerError):
    """The templating engine rejected the flattened source."""

    def __init__(self, message: str, template_id: Optional[str] = None, context: ErrorContext = None):
        super().__init__(message, context=context, details={"template_id": template_id})
        self.template_id = template_id

class ShrinkError(TemplateCompilerError):
    """A script or stylesheet shrinker rejected its input."""
    pass
