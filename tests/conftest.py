"""Pytest configuration and fixtures."""
from collections import Counter
from pathlib import Path
from typing import Dict

import pytest

from template_compiler.cache import TemplateCache
from template_compiler.compiler import TemplateCompiler
from template_compiler.templates.assembler import TemplateAssembler
from template_compiler.templates.loader import FileSystemLoader

class CountingLoader(FileSystemLoader):
    """File system loader recording how often each template is fetched."""

    def __init__(self, root):
        super().__init__(root)
        self.reads = Counter()

    async def read_all(self, template_id: str) -> bytes:
        self.reads[template_id] += 1
        return await super().read_all(template_id)

def write_templates(root: Path, files: Dict[str, str]) -> None:
    """Write template files below ``root``, creating directories as needed."""
    for name, content in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")

@pytest.fixture
def template_root(tmp_path):
    """Create an empty template root directory."""
    root = tmp_path / "views"
    root.mkdir()
    return root

@pytest.fixture
def loader(template_root):
    return CountingLoader(template_root)

@pytest.fixture
def cache():
    return TemplateCache()

@pytest.fixture
def assembler(template_root, loader, cache):
    return TemplateAssembler(template_root, loader, cache)

@pytest.fixture
def compiler(template_root, loader, cache):
    """Create a compiler without compression over the template root."""
    return TemplateCompiler(root=template_root, compress=False, source=loader, cache=cache)

@pytest.fixture
def compressing_compiler(template_root, loader, cache):
    """Create a compiler with compression over the template root."""
    return TemplateCompiler(root=template_root, compress=True, source=loader, cache=cache)

@pytest.fixture
def make_templates(template_root):
    """Return a helper writing template files below the template root."""
    def _make(files: Dict[str, str]) -> Path:
        write_templates(template_root, files)
        return template_root
    return _make
