"""
Script and stylesheet shrinking that keeps template directives intact.

Directives are not valid script syntax, so before shrinking each distinct
directive span is swapped for a placeholder identifier derived from the md5
of its text, and swapped back afterwards. rjsmin only strips whitespace and
comments and never renames identifiers, so placeholders come back verbatim.
"""
import hashlib
import logging
import re
from typing import Callable, Dict, Tuple

import rcssmin
import rjsmin

from ..error.exceptions import ErrorContext, ShrinkError

logger = logging.getLogger(__name__)

DIRECTIVE_PATTERN = re.compile(r'<%.*?%>', re.DOTALL)
PLACEHOLDER_PREFIX = "tplmatch"

Shrinker = Callable[[str], str]

def _run_shrinker(name: str, shrinker: Shrinker, text: str) -> str:
    try:
        return shrinker(text)
    except Exception as e:
        raise ShrinkError(
            f"{name} shrinker failed: {e}",
            context=ErrorContext("minifier", name, length=len(text))
        ) from e

def shrink_script(text: str) -> str:
    """Shrink script text with rjsmin."""
    return _run_shrinker("script", rjsmin.jsmin, text)

def shrink_stylesheet(text: str) -> str:
    """Shrink stylesheet text with rcssmin."""
    return _run_shrinker("stylesheet", rcssmin.cssmin, text)

def placeholder_for(directive: str) -> str:
    """
    Get the placeholder token for a directive span.

    Args:
        directive: Full directive text including its markers

    Returns:
        Identifier-shaped token unique to the directive text
    """
    return PLACEHOLDER_PREFIX + hashlib.md5(directive.encode("utf-8")).hexdigest()

class DirectiveSafeMinifier:
    """Runs a script shrinker over template source without touching its directives."""

    def __init__(self, shrinker: Shrinker = shrink_script):
        """
        Initialize the minifier.

        Args:
            shrinker: Text-to-text script shrinker
        """
        self.shrinker = shrinker

    def substitute(self, text: str) -> Tuple[str, Dict[str, str]]:
        """
        Replace every directive span with its placeholder token.

        Args:
            text: Template source

        Returns:
            Substituted text and the token to directive mapping
        """
        mapping: Dict[str, str] = {}

        def replace(match: re.Match) -> str:
            token = placeholder_for(match.group(0))
            mapping[token] = match.group(0)
            return token

        return DIRECTIVE_PATTERN.sub(replace, text), mapping

    def restore(self, text: str, mapping: Dict[str, str]) -> str:
        """
        Put the original directive spans back in place of their tokens.

        Args:
            text: Shrunk text containing placeholder tokens
            mapping: Token to directive mapping from :meth:`substitute`

        Returns:
            Text with every token replaced by its directive
        """
        for token, directive in mapping.items():
            if token not in text:
                logger.warning(f"Directive dropped by shrinker: {directive[:60]!r}")
                continue
            text = text.replace(token, directive)
        return text

    def minify(self, text: str) -> str:
        """
        Shrink template source, keeping directives verbatim.

        Args:
            text: Flattened template source

        Returns:
            Shrunk source with directives restored
        """
        substituted, mapping = self.substitute(text)
        shrunk = self.shrinker(substituted)
        return self.restore(shrunk, mapping)
