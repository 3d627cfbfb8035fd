"""Typer application and CLI entry point for specgen.

Commands:

* ``specgen generate SPEC`` -- run the generation pipeline. Plugins given
  with ``-P module:attribute`` (or listed in ``specgen.json``) are loaded
  first so that the flags they contribute can be parsed from the remaining
  arguments.
* ``specgen plugins`` -- list plugins and the flags they contribute.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. Unhandled exceptions are written to a crash log under
the data directory.
"""

from __future__ import annotations

import asyncio
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from specgen import __version__
from specgen.exceptions import SpecgenError
from specgen.exit_codes import EXIT_GENERIC_FAILURE
from specgen.output import error, info, print_table, success


app = typer.Typer(
    name="specgen",
    help="Generate Python API clients from OpenAPI 3.0/3.1 documents.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"specgen {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Install the global output manager and logging handler."""
    from specgen.output import OutputManager, configure_logging, set_output

    output = OutputManager(no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    configure_logging(output)


def _load_plugins(paths: Optional[list[str]]):  # noqa: ANN202
    """Create a PluginManager and load *paths*, falling back to specgen.json."""
    from specgen.config import load_project_config
    from specgen.plugins import PluginManager

    project = load_project_config()
    manager = PluginManager()
    manager.load_paths(paths or project.plugins)
    return manager, project


@app.command(
    "generate",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def generate_command(
    ctx: typer.Context,
    spec: Optional[str] = typer.Argument(
        None, help="OpenAPI document: URL, file path, or '-' for stdin."
    ),
    output: Optional[str] = typer.Option(
        None, "-o", "--output", help="Write the module here instead of stdout."
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Base URL baked into `defaults`."
    ),
    include_tag: Optional[list[str]] = typer.Option(
        None, "--include-tag", help="Only generate operations with this tag."
    ),
    exclude_tag: Optional[list[str]] = typer.Option(
        None, "--exclude-tag", help="Skip operations with this tag."
    ),
    include_deprecated: Optional[bool] = typer.Option(
        None,
        "--include-deprecated/--no-include-deprecated",
        help="Generate functions for deprecated operations.",
    ),
    plugin: Optional[list[str]] = typer.Option(
        None, "--plugin", "-P", help="Plugin import path (module:attribute)."
    ),
) -> None:
    """Generate a Python client module from an OpenAPI document.

    Flags contributed by plugins may follow the built-in options; pass
    them as ``--flag=value``.

    Example::

        specgen generate openapi.yaml -o api.py
        specgen generate openapi.yaml -P acme.plugins:rename --rename-style=snake
    """
    from specgen.config import resolve_options
    from specgen.generator import GenerationPipeline
    from specgen.generator.pipeline import STDOUT_NAME
    from specgen.parser import load_spec, validate_openapi_version

    try:
        manager, project = _load_plugins(plugin)
        cli_values: dict[str, Any] = {
            "spec": spec,
            "output": output,
            "base_url": base_url,
            "include_tags": include_tag,
            "exclude_tags": exclude_tag,
            "include_deprecated": include_deprecated,
            "plugins": plugin,
        }
        options = resolve_options(
            cli=cli_values,
            plugin_defaults=manager.default_plugin_values(),
            plugin_values=manager.parse_plugin_args(ctx.args),
            project=project,
        )
        manager.validate_options(options)

        document = load_spec(options.spec)
        validate_openapi_version(document)

        pipeline = GenerationPipeline(document, options, manager.get_hook_runner())
        result = asyncio.run(pipeline.run())
    except SpecgenError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    if result.file_name != STDOUT_NAME:
        success(
            f"Generated {len(result.functions)} functions and "
            f"{len(result.types)} types in {result.file_name}"
        )


@app.command("plugins")
def plugins_command(
    plugin: Optional[list[str]] = typer.Option(
        None, "--plugin", "-P", help="Plugin import path (module:attribute)."
    ),
) -> None:
    """List plugins and the flags they add to ``generate``."""
    try:
        manager, _ = _load_plugins(plugin)
    except SpecgenError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    plugins = manager.list_plugins()
    if not plugins:
        info("No plugins loaded.")
        return

    rows = [
        [
            entry["name"],
            "yes" if entry["enabled"] else "no",
            ", ".join(f"--{name}" for name in entry["options"]) or "-",
            entry["description"] or "-",
        ]
        for entry in plugins
    ]
    print_table(["Plugin", "Enabled", "Options", "Description"], rows, title="Plugins")


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from specgen.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``specgen`` console script.

    :class:`~specgen.exceptions.SpecgenError` instances cause a clean exit
    with the error's ``exit_code``. All other exceptions produce a crash log
    and a generic failure exit.
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        if isinstance(exc, SpecgenError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
