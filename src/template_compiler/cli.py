import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Optional

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .compiler import TemplateCompiler
from .config.configuration import load_config
from .error.exceptions import TemplateCompilerError
from .utils.logging import configure_logging

# Initialize Typer app
app = typer.Typer(help="Template compiler CLI")

# Initialize Rich console
console = Console(stderr=True)

RootOption = typer.Option(None, "--root", "-r", help="Template root directory")
ConfigOption = typer.Option(None, "--config", "-c", help="Path to config file")
CompressOption = typer.Option(None, "--compress/--no-compress", help="Shrink compiled templates")
LogLevelOption = typer.Option(None, "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)")
JsonLogsOption = typer.Option(False, "--json-logs", help="Emit structured JSON logs")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Log compile progress")

def _build_compiler(
    root: Optional[Path],
    config_path: Optional[Path],
    compress: Optional[bool],
    log_level: Optional[str],
    json_logs: bool,
    verbose: bool
) -> TemplateCompiler:
    config = load_config(
        config_path,
        root=root,
        compress=compress,
        log_level=log_level,
        structured_logging=json_logs or None,
        log=verbose or None
    )
    configure_logging(config.model_dump())
    return TemplateCompiler(config)

def _load_data(data_path: Optional[Path]) -> Dict[str, Any]:
    if data_path is None:
        return {}
    content = data_path.read_text(encoding="utf-8")
    if data_path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(content) or {}
    else:
        data = json.loads(content)
    if not isinstance(data, dict):
        raise typer.BadParameter("Render data must be a mapping", param_hint="--data")
    return data

async def _compile_with_source(compiler: TemplateCompiler, template: str):
    """Compile a template and return it with its flattened source, read from the warm cache."""
    compiled = await compiler.compile_file(template)
    flattened = await compiler.assembler.read(compiler.normalize(template))
    return compiled, flattened

def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error: {escape(str(error))}[/bold red]")
    raise typer.Exit(code=1)

@app.command("render")
def render(
    template: str = typer.Argument(..., help="Template path relative to the root"),
    data_path: Optional[Path] = typer.Option(None, "--data", "-d", help="JSON or YAML file with render data"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the result to a file"),
    root: Optional[Path] = RootOption,
    config_path: Optional[Path] = ConfigOption,
    compress: Optional[bool] = CompressOption,
    log_level: Optional[str] = LogLevelOption,
    json_logs: bool = JsonLogsOption,
    verbose: bool = VerboseOption
):
    """Render a template with data."""
    try:
        compiler = _build_compiler(root, config_path, compress, log_level, json_logs, verbose)
        text = asyncio.run(compiler.render_file(template, _load_data(data_path)))
    except (TemplateCompilerError, OSError, ValueError) as e:
        _fail(e)
        return

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text, encoding="utf-8")
        console.print(f"[bold green]Rendered {template} to {output}[/bold green]")
    else:
        typer.echo(text, nl=False)

@app.command("compile")
def compile_template(
    template: str = typer.Argument(..., help="Template path relative to the root"),
    show_source: bool = typer.Option(False, "--show-source", help="Print the compiled source"),
    root: Optional[Path] = RootOption,
    config_path: Optional[Path] = ConfigOption,
    compress: Optional[bool] = CompressOption,
    log_level: Optional[str] = LogLevelOption,
    json_logs: bool = JsonLogsOption,
    verbose: bool = VerboseOption
):
    """Compile a template and report its dependencies."""
    try:
        compiler = _build_compiler(root, config_path, compress, log_level, json_logs, verbose)
        compiled, flattened = asyncio.run(_compile_with_source(compiler, template))
    except TemplateCompilerError as e:
        _fail(e)
        return

    template_id = compiler.normalize(template)
    table = Table(title=f"Template: {template_id}")
    table.add_column("Included template")
    table.add_column("Included by")
    for child, parent in compiler.cache.relations.edges():
        table.add_row(child, parent)
    console.print(table)

    stats = compiler.cache.stats()
    shrunk = len(compiled.source)
    factor = round(shrunk / len(flattened) * 100) if flattened else 100
    console.print(
        f"Flattened size: {len(flattened)} chars, "
        f"shrunk size: {shrunk} chars ({factor}%), "
        f"{stats.sources} sources cached"
    )
    if show_source:
        typer.echo(compiled.source)

@app.command("precompile")
def precompile(
    root: Optional[Path] = RootOption,
    config_path: Optional[Path] = ConfigOption,
    compress: Optional[bool] = CompressOption,
    log_level: Optional[str] = LogLevelOption,
    json_logs: bool = JsonLogsOption,
    verbose: bool = VerboseOption
):
    """Compile every template under the root."""
    try:
        compiler = _build_compiler(root, config_path, compress, log_level, json_logs, verbose)
        compiled = asyncio.run(compiler.precompile())
    except TemplateCompilerError as e:
        _fail(e)
        return

    table = Table(title=f"Templates in {compiler.root}")
    table.add_column("Template")
    table.add_column("Compiled size", justify="right")
    for template_id in compiled:
        table.add_row(template_id, str(len(compiler.cache.get_compiled(template_id).source)))
    console.print(table)
    console.print(f"\nTotal templates: {len(compiled)}")

if __name__ == "__main__":
    app()
