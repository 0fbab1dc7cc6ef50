import asyncio
import logging

import pytest

from template_compiler.compiler import TemplateCompiler
from template_compiler.error.exceptions import (
    ConfigurationError,
    TemplateCompileError,
    TemplateNotFoundError,
)
from template_compiler.templates.loader import FileSystemLoader

@pytest.mark.asyncio
async def test_compile_is_idempotent(compiler, loader, make_templates):
    """Test that a second compile returns the cached render function without reading files."""
    make_templates({"index.mjs": "Hello <%= name %>"})

    first = await compiler.compile_file("index.mjs")
    second = await compiler.compile_file("index.mjs")

    assert first is second
    assert loader.reads["index.mjs"] == 1

@pytest.mark.asyncio
async def test_absolute_and_relative_paths_share_the_cache(compiler, loader, template_root, make_templates):
    make_templates({"pages/index.mjs": "x"})

    first = await compiler.compile_file(template_root / "pages" / "index.mjs")
    second = await compiler.compile_file("./pages/../pages/index.mjs")

    assert first is second
    assert loader.reads["pages/index.mjs"] == 1

@pytest.mark.asyncio
async def test_render_file(compiler, make_templates):
    make_templates({
        "index.mjs": '<% include "header.mjs" %><p><%= data.a %>-<%= data.b %></p>',
        "header.mjs": "<h1><%= baseurl %></h1>",
    })

    result = await compiler.render_file("index.mjs", {
        "baseurl": "http://localhost",
        "data": {"a": "a", "b": 123},
    })

    assert result == "<h1>http://localhost</h1><p>a-123</p>"

@pytest.mark.asyncio
async def test_render_does_not_mutate_caller_data(compiler, make_templates):
    """Test that rendering works on a deep copy of the data."""
    make_templates({"mutate.mjs": "<% set _ = items.append(4) %><%= items|length %>"})
    data = {"items": [1, 2, 3]}

    assert await compiler.render_file("mutate.mjs", data) == "4"
    assert await compiler.render_file("mutate.mjs", data) == "4"
    assert data == {"items": [1, 2, 3]}

@pytest.mark.asyncio
async def test_render_without_data(compiler, make_templates):
    make_templates({"static.mjs": "static"})
    assert await compiler.render_file("static.mjs") == "static"

@pytest.mark.asyncio
async def test_cascading_invalidation(compiler, cache, loader, make_templates):
    """Test that invalidating a leaf drops every compiled template including it."""
    root = make_templates({
        "a.mjs": '<% include "b.mjs" %>A',
        "b.mjs": '<% include "c.mjs" %>B',
        "c.mjs": "C",
    })
    for name in ("a.mjs", "b.mjs", "c.mjs"):
        await compiler.compile_file(name)
    assert loader.reads["c.mjs"] == 1

    (root / "c.mjs").write_text("changed", encoding="utf-8")
    compiler.invalidate_one("c.mjs")

    assert cache.get_compiled("a.mjs") is None
    assert cache.get_compiled("b.mjs") is None
    assert cache.get_compiled("c.mjs") is None

    assert await compiler.render_file("a.mjs") == "changedBA"
    assert loader.reads["c.mjs"] == 2
    # b.mjs was still cached as a source
    assert loader.reads["b.mjs"] == 1

@pytest.mark.asyncio
async def test_diamond_invalidation(compiler, cache, make_templates):
    make_templates({
        "a.mjs": '<% include "c.mjs" %>a',
        "b.mjs": '<% include "c.mjs" %>b',
        "c.mjs": "c",
        "other.mjs": "o",
    })
    for name in ("a.mjs", "b.mjs", "other.mjs"):
        await compiler.compile_file(name)

    compiler.invalidate_one("c.mjs")

    assert cache.get_compiled("a.mjs") is None
    assert cache.get_compiled("b.mjs") is None
    assert cache.get_compiled("other.mjs") is not None

@pytest.mark.asyncio
async def test_invalidate_all(compiler, cache, loader, make_templates):
    make_templates({"a.mjs": '<% include "b.mjs" %>', "b.mjs": "b"})
    await compiler.compile_file("a.mjs")

    compiler.invalidate_all()

    assert cache.stats().sources == 0
    assert cache.stats().compiled == 0
    await compiler.compile_file("a.mjs")
    assert loader.reads["b.mjs"] == 2

@pytest.mark.asyncio
async def test_missing_template(compiler, cache):
    with pytest.raises(TemplateNotFoundError):
        await compiler.compile_file("missing.mjs")
    assert cache.get_compiled("missing.mjs") is None

@pytest.mark.asyncio
async def test_missing_include_leaves_top_level_uncompiled(compiler, cache, make_templates):
    make_templates({"a.mjs": '<% include "gone.mjs" %>'})

    with pytest.raises(TemplateNotFoundError):
        await compiler.render_file("a.mjs", {})

    assert cache.get_compiled("a.mjs") is None
    assert cache.get_source_text("gone.mjs") is None

@pytest.mark.asyncio
async def test_compile_error_is_not_cached(compiler, cache, make_templates):
    root = make_templates({"bad.mjs": "<% if x %>never closed"})

    with pytest.raises(TemplateCompileError):
        await compiler.compile_file("bad.mjs")
    assert cache.get_compiled("bad.mjs") is None

    (root / "bad.mjs").write_text("<% if x %>closed<% endif %>", encoding="utf-8")
    compiler.invalidate_one("bad.mjs")
    assert await compiler.render_file("bad.mjs", {"x": True}) == "closed"

@pytest.mark.asyncio
async def test_concurrent_compiles_share_work(compiler, loader, make_templates):
    make_templates({"a.mjs": '<% include "b.mjs" %>', "b.mjs": "b"})

    first, second = await asyncio.gather(
        compiler.compile_file("a.mjs"),
        compiler.compile_file("a.mjs"),
    )

    assert first is second
    assert loader.reads["a.mjs"] == 1
    assert loader.reads["b.mjs"] == 1

@pytest.mark.asyncio
async def test_compressed_script_template(compressing_compiler, make_templates):
    make_templates({
        "app.mjs": (
            "var name = \"<%= name %>\";\n"
            "// greeting\n"
            "var count = <%= count %>;\n"
        ),
    })

    compiled = await compressing_compiler.compile_file("app.mjs")
    result = compiled({"name": "World", "count": 3})

    assert "greeting" not in compiled.source
    assert 'var name="World";' in result
    assert "var count=3;" in result

@pytest.mark.asyncio
async def test_compressed_stylesheet(compressing_compiler, make_templates):
    make_templates({"site.css": "body {\n    margin: 0;\n}\n"})

    result = await compressing_compiler.render_file("site.css")

    assert result.startswith("body{margin:0")
    assert "\n" not in result

@pytest.mark.asyncio
async def test_precompile_on_initialize(template_root, loader, cache, make_templates):
    make_templates({
        "index.mjs": '<% include "parts/footer.mjs" %>',
        "parts/footer.mjs": "footer",
        "parts/style.css": "p{}",
        "readme.txt": "not a template",
    })
    compiler = TemplateCompiler(root=template_root, precompile=True, source=loader, cache=cache)

    async with compiler:
        assert cache.get_compiled("index.mjs") is not None
        assert cache.get_compiled("parts/footer.mjs") is not None
        assert cache.get_compiled("parts/style.css") is None
        assert cache.get_compiled("readme.txt") is None

@pytest.mark.asyncio
async def test_precompile_failure_propagates(template_root, make_templates):
    make_templates({"broken.mjs": '<% include "nope.mjs" %>'})
    compiler = TemplateCompiler(root=template_root, precompile=True)

    with pytest.raises(TemplateNotFoundError):
        await compiler.initialize()

@pytest.mark.asyncio
async def test_watch_resets_cache(template_root, cache, make_templates):
    make_templates({"index.mjs": "x"})
    compiler = TemplateCompiler(root=template_root, watch=True, watch_interval=0.01, cache=cache)

    await compiler.initialize()
    try:
        await compiler.compile_file("index.mjs")
        await asyncio.sleep(0.1)
        assert cache.get_compiled("index.mjs") is None
        assert cache.get_source_text("index.mjs") is None
    finally:
        await compiler.close()

    assert compiler._watch_task is None

def test_missing_root_is_a_configuration_error():
    with pytest.raises(ConfigurationError) as exc_info:
        TemplateCompiler(compress=True)
    assert "root" in str(exc_info.value)

def test_nonexistent_root_is_a_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError):
        TemplateCompiler(root=tmp_path / "does-not-exist")

def test_invalidate_outside_root_is_rejected(compiler):
    with pytest.raises(TemplateNotFoundError):
        compiler.invalidate_one("../elsewhere.mjs")

def test_instances_have_independent_caches(template_root):
    first = TemplateCompiler(root=template_root)
    second = TemplateCompiler(root=template_root)
    assert first.cache is not second.cache

class GatedLoader(FileSystemLoader):
    """Loader holding back the fetch of one template until released."""

    def __init__(self, root, gated: str):
        super().__init__(root)
        self.gated = gated
        self.fetching = asyncio.Event()
        self.release = asyncio.Event()

    async def read_all(self, template_id: str) -> bytes:
        raw = await super().read_all(template_id)
        if template_id == self.gated:
            self.fetching.set()
            await self.release.wait()
        return raw

@pytest.mark.asyncio
@pytest.mark.parametrize("invalidate", [
    lambda compiler: compiler.invalidate_one("c.mjs"),
    lambda compiler: compiler.invalidate_all(),
])
async def test_invalidation_during_fetch_discards_loaded_text(template_root, cache, make_templates, invalidate):
    """Test that text fetched before an invalidation is never cached after it."""
    make_templates({"a.mjs": '<% include "c.mjs" %>A', "c.mjs": "old"})
    loader = GatedLoader(template_root, "c.mjs")
    compiler = TemplateCompiler(root=template_root, compress=False, source=loader, cache=cache)

    pending = asyncio.ensure_future(compiler.render_file("a.mjs"))
    await loader.fetching.wait()
    (template_root / "c.mjs").write_text("new", encoding="utf-8")
    invalidate(compiler)
    loader.release.set()

    assert await pending == "oldA"
    assert cache.get_source_text("c.mjs") is None
    assert cache.get_compiled("a.mjs") is None

    assert await compiler.render_file("a.mjs") == "newA"
    assert cache.relations.parents_of("c.mjs") == {"a.mjs"}

@pytest.mark.asyncio
async def test_unrelated_invalidation_during_compile_keeps_result(template_root, cache, make_templates):
    make_templates({"a.mjs": '<% include "c.mjs" %>A', "c.mjs": "c", "other.mjs": "o"})
    loader = GatedLoader(template_root, "c.mjs")
    compiler = TemplateCompiler(root=template_root, compress=False, source=loader, cache=cache)

    pending = asyncio.ensure_future(compiler.compile_file("a.mjs"))
    await loader.fetching.wait()
    compiler.invalidate_one("other.mjs")
    loader.release.set()

    compiled = await pending
    assert cache.get_compiled("a.mjs") is compiled
    assert cache.get_source_text("c.mjs") == "c"

@pytest.mark.asyncio
async def test_symlinked_root_shares_identifiers(tmp_path, template_root, make_templates):
    make_templates({"index.mjs": "x"})
    link = tmp_path / "link"
    link.symlink_to(template_root, target_is_directory=True)
    compiler = TemplateCompiler(root=link, compress=False)

    first = await compiler.compile_file("index.mjs")
    second = await compiler.compile_file(link / "index.mjs")
    third = await compiler.compile_file(template_root / "index.mjs")

    assert first is second is third

@pytest.mark.asyncio
async def test_compress_statistics_are_logged(compressing_compiler, make_templates, caplog):
    make_templates({"app.mjs": "var a = 1;\n\n// note\nvar b = <%= b %>;\n"})

    with caplog.at_level(logging.DEBUG, logger="template_compiler.compiler"):
        compiled = await compressing_compiler.compile_file("app.mjs")

    records = [record for record in caplog.records if hasattr(record, "data")]
    assert len(records) == 1
    stats = records[0].data
    assert stats["shrunk"] == len(compiled.source)
    assert stats["flattened"] > stats["shrunk"]
    assert records[0].template == "app.mjs"
