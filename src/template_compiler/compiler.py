"""
Template compiler: reads, flattens, shrinks and compiles templates with caching.
"""
import asyncio
import copy
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .cache import TemplateCache
from .cache.template_cache import Version
from .config.configuration import CompilerConfiguration, ensure_compiler_config
from .templates.assembler import TemplateAssembler
from .templates.engine import CompiledTemplate, TemplateEngine
from .templates.identifiers import is_stylesheet, is_template, normalize_template_id
from .templates.loader import FileSystemLoader, TemplateSource
from .templates.minifier import DirectiveSafeMinifier, shrink_stylesheet
from .utils.logging import get_logger

class TemplateCompiler:
    """
    Compiles templates under a root directory into cached render functions.

    Compiled templates are cached until one of the files they were built
    from is invalidated. Concurrent compiles of the same template share a
    single in-flight task.
    """

    def __init__(
        self,
        config: Union[CompilerConfiguration, Dict[str, Any], None] = None,
        *,
        cache: Optional[TemplateCache] = None,
        source: Optional[TemplateSource] = None,
        engine: Optional[TemplateEngine] = None,
        minifier: Optional[DirectiveSafeMinifier] = None,
        **options
    ):
        """
        Initialize the compiler.

        Args:
            config: Compiler configuration or dictionary of options
            cache: Cache to use, a fresh one by default
            source: Backing store, the file system under ``root`` by default
            engine: Templating engine
            minifier: Directive-safe script minifier
            **options: Configuration options overriding ``config``

        Raises:
            ConfigurationError: if the configuration is missing ``root`` or invalid
        """
        self.config = ensure_compiler_config(config, **options)
        self.root: Path = self.config.root
        self.cache = cache if cache is not None else TemplateCache()
        self.source = source or FileSystemLoader(self.root)
        self.engine = engine or TemplateEngine()
        self.minifier = minifier or DirectiveSafeMinifier()
        self.assembler = TemplateAssembler(self.root, self.source, self.cache)

        self.logger = get_logger(__name__, root=str(self.root))
        self._log = self.logger.info if self.config.log else self.logger.debug
        self._inflight: Dict[str, asyncio.Task] = {}
        self._watch_task: Optional[asyncio.Task] = None

    async def initialize(self) -> None:
        """Precompile templates and start the cache reset loop, as configured."""
        if self.config.precompile:
            started = time.perf_counter()
            compiled = await self.precompile()
            self._log(
                f"Precompiled {len(compiled)} templates in "
                f"{round((time.perf_counter() - started) * 1000)}ms"
            )

        if self.config.watch and self._watch_task is None:
            self._watch_task = asyncio.create_task(self._watch())
            self.logger.debug(f"Cache reset every {self.config.watch_interval}s")

    async def close(self) -> None:
        """Stop the cache reset loop."""
        if self._watch_task is not None:
            self._watch_task.cancel()
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass
            self._watch_task = None

    async def __aenter__(self) -> "TemplateCompiler":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _watch(self) -> None:
        while True:
            await asyncio.sleep(self.config.watch_interval)
            self.invalidate_all()

    def normalize(self, name: Union[str, Path]) -> str:
        """Convert an absolute or root-relative path to a template identifier."""
        return normalize_template_id(self.root, name)

    async def compile_file(self, name: Union[str, Path]) -> CompiledTemplate:
        """
        Get the compiled render function for a template.

        Args:
            name: Template path, absolute or relative to the root

        Returns:
            Compiled template, the cached one when available

        Raises:
            TemplateNotFoundError: if the template or one of its includes is missing
            CircularIncludeError: if the template includes itself
            ShrinkError: if a shrinker rejects the source
            TemplateCompileError: if the templating engine rejects the source
        """
        template_id = self.normalize(name)

        compiled = self.cache.get_compiled(template_id)
        if compiled is not None:
            return compiled

        task = self._inflight.get(template_id)
        if task is None:
            task = asyncio.ensure_future(self._compile(template_id))
            self._inflight[template_id] = task

            def _done(finished: asyncio.Task) -> None:
                if self._inflight.get(template_id) is finished:
                    del self._inflight[template_id]

            task.add_done_callback(_done)

        return await task

    async def _compile(self, template_id: str) -> CompiledTemplate:
        self._log(f"[{template_id}] compile")
        versions: Dict[str, Version] = {}

        source_text = await self.assembler.read(template_id, versions=versions)

        started = time.perf_counter()
        if not self.config.compress:
            text = source_text
        elif is_stylesheet(template_id):
            text = shrink_stylesheet(source_text)
        else:
            text = self.minifier.minify(source_text)
        elapsed = round((time.perf_counter() - started) * 1000)

        if self.config.compress:
            factor = round(len(text) / len(source_text) * 100) if source_text else 100
            self._log(
                f"[{template_id}] {len(source_text)} -> {len(text)}, {factor}%, {elapsed}ms",
                extra={"template": template_id, "data": {
                    "flattened": len(source_text),
                    "shrunk": len(text),
                    "ratio": factor,
                    "elapsed_ms": elapsed,
                }}
            )

        compiled = self.engine.compile_template(text, template_id)

        # Only invalidations of the templates read above make the result stale
        if self.cache.is_current(versions):
            self.cache.set_compiled(template_id, compiled)
        else:
            self.logger.debug(f"[{template_id}] include invalidated during compile, result not cached")

        return compiled

    async def render_file(self, name: Union[str, Path], data: Optional[Dict[str, Any]] = None) -> str:
        """
        Render a template with data.

        The data is deep-copied so the template never sees or mutates the
        caller's objects.

        Args:
            name: Template path, absolute or relative to the root
            data: Rendering context

        Returns:
            Rendered text
        """
        data_copy = copy.deepcopy(data) if data is not None else {}
        compiled = await self.compile_file(name)
        return compiled(data_copy)

    async def precompile(self, directory: str = "") -> List[str]:
        """
        Compile every template below a directory.

        Args:
            directory: Directory identifier, empty for the root

        Returns:
            Identifiers of the compiled templates
        """
        compiled = []
        for child in self.source.list_children(directory):
            if self.source.is_dir(child):
                compiled.extend(await self.precompile(child))
            elif is_template(child):
                try:
                    await self.compile_file(child)
                except Exception as e:
                    self.logger.error(f"[{child}] precompile failed: {e}")
                    raise
                self._log(f"[{child}] precompiled")
                compiled.append(child)
        return compiled

    def invalidate_one(self, name: Union[str, Path]) -> None:
        """
        Drop a template from the cache together with every template including it.

        Args:
            name: Template path, absolute or relative to the root
        """
        template_id = self.normalize(name)
        self.cache.invalidate_one(template_id)
        self.logger.debug(f"[{template_id}] invalidated")

    def invalidate_all(self) -> None:
        """Drop every cached template."""
        self.cache.invalidate_all()
