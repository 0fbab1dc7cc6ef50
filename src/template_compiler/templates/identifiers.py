"""
Template identifiers: normalized, root-relative POSIX paths.
"""
import os
from pathlib import Path, PurePosixPath
from typing import Union

from ..error.exceptions import ErrorContext, TemplateNotFoundError

TEMPLATE_SUFFIX = ".mjs"
STYLESHEET_SUFFIX = ".css"

def normalize_template_id(root: Union[str, Path], name: Union[str, Path]) -> str:
    """
    Normalize a template path to its identifier.

    Absolute paths inside ``root`` and relative paths resolve to the same
    identifier. Relative paths are resolved lexically. An absolute path that
    is not lexically below ``root`` is compared again with symlinks resolved
    on both sides, so a root reached through a symlink still matches.

    Args:
        root: Absolute template root directory
        name: Absolute path or path relative to ``root``

    Returns:
        Root-relative POSIX path

    Raises:
        TemplateNotFoundError: if the path points outside ``root``
    """
    root_path = os.path.normpath(os.path.abspath(str(root)))
    full_path = os.path.normpath(os.path.join(root_path, str(name)))
    relative = os.path.relpath(full_path, root_path)

    if _is_outside(relative) and os.path.isabs(str(name)):
        relative = os.path.relpath(os.path.realpath(full_path), os.path.realpath(root_path))

    if _is_outside(relative):
        raise TemplateNotFoundError(
            str(name),
            message=f"Template path outside of root: {name}",
            context=ErrorContext("identifiers", "normalize_template_id", root=root_path)
        )

    return Path(relative).as_posix()

def _is_outside(relative: str) -> bool:
    return relative == os.curdir or relative == os.pardir or relative.startswith(os.pardir + os.sep)

def is_template(template_id: str) -> bool:
    """True for template-language files, which are scanned for directives."""
    return PurePosixPath(template_id).suffix == TEMPLATE_SUFFIX

def is_stylesheet(template_id: str) -> bool:
    return PurePosixPath(template_id).suffix == STYLESHEET_SUFFIX
