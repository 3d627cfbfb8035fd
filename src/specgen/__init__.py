"""specgen -- Generate Python API clients from OpenAPI 3.0/3.1 documents.

This package converts an OpenAPI document into a single Python module: one
``TypedDict`` or alias per component schema and one function per operation,
all calling a small ``httpx``-based request helper. Plugins can observe and
rewrite the document and the generated :mod:`ast` tree at a fixed sequence
of checkpoints.

Typical workflow::

    specgen generate openapi.yaml -o client/api.py
    specgen generate openapi.yaml -o client/api.py -P my_plugins.rename:plugin

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    config: Project config, option precedence, and atomic writes.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr discipline and Rich logging setup.
    plugins: Plugin descriptor, registrar, and checkpoint runner.
    generator: The generation pipeline and its converters.
"""

__version__ = "0.1.0"
