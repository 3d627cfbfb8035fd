"""The generation run: document in, Python module out, plugins at every checkpoint.

:class:`GenerationPipeline` walks the checkpoints in their fixed order:

1. ``initialize`` -- options and document, before any AST exists.
2. ``modify_defaults`` / 3. ``modify_servers`` -- the head assignments.
4-5. ``before/after_convert_endpoint`` -- once per operation.
6-7. ``before/after_convert_schema`` -- once per schema fragment, both for
   ``components.schemas`` and for schemas met while converting operations.
8. ``after_ast_generate`` -- the complete tree, before rendering.
9. ``before/after_write_to_file`` -- the rendered source around the write.

Component types are converted before operations, so the generated module
reads top to bottom as head, types, functions.

Each checkpoint is awaited to completion before the pipeline moves on, and
every plugin sees the document and tree as left by the plugins before it.
"""

from __future__ import annotations

import ast
import logging
from pathlib import Path
from typing import Any, Iterator, Optional

from specgen.config import atomic_write
from specgen.exceptions import GenerationError
from specgen.generator.endpoints import EndpointConverter
from specgen.generator.head import build_head
from specgen.generator.naming import type_name
from specgen.generator.types import TypeConverter
from specgen.models import GenerateOptions, GenerationResult, HTTPMethod
from specgen.output import print_data
from specgen.parser.resolver import deref
from specgen.plugins.hooks import Checkpoint, HookRunner

logger = logging.getLogger(__name__)

STDOUT_NAME = "<stdout>"
"""``file_name`` passed to the write checkpoints when no output path is set."""


class GenerationPipeline:
    """Runs one generation from a loaded document to written source.

    Args:
        document: The OpenAPI document. Shared with plugins by reference.
        options: Fully merged options for the run.
        runner: Hook runner over the active plugins. An empty runner gives a
            plain, plugin-free generation.
    """

    def __init__(
        self,
        document: dict[str, Any],
        options: GenerateOptions,
        runner: Optional[HookRunner] = None,
    ) -> None:
        self.document = document
        self.options = options
        self.runner = runner or HookRunner([])
        self._types: list[str] = []
        self._functions: list[str] = []

    async def run(self) -> GenerationResult:
        """Execute every checkpoint in order and write the result.

        Returns:
            The file name, rendered source, and generated names.

        Raises:
            PluginError: If a plugin callback raises.
            GenerationError: If the tree cannot be rendered.
        """
        document = self.document
        await self.runner.run(Checkpoint.INITIALIZE, self.options, document)

        tree, defaults, servers = build_head(document, self.options.base_url)
        await self.runner.run(Checkpoint.MODIFY_DEFAULTS, defaults, tree, document)
        await self.runner.run(Checkpoint.MODIFY_SERVERS, servers, tree, document)

        types = TypeConverter(document, tree, self.runner)
        await self._add_types(types, tree)
        await self._add_functions(EndpointConverter(document, tree, self.runner, types), tree)

        await self.runner.run(Checkpoint.AFTER_AST_GENERATE, tree, document)
        contents = self.render(tree)

        file_name = self.options.output or STDOUT_NAME
        await self.runner.run(Checkpoint.BEFORE_WRITE_TO_FILE, file_name, contents, document)
        self._write(file_name, contents)
        await self.runner.run(Checkpoint.AFTER_WRITE_TO_FILE, file_name, contents, document)

        return GenerationResult(
            file_name=file_name,
            contents=contents,
            functions=list(self._functions),
            types=list(self._types),
        )

    async def _add_types(self, converter: TypeConverter, tree: ast.Module) -> None:
        schemas = (self.document.get("components") or {}).get("schemas") or {}
        for name, schema in list(schemas.items()):
            identifier = type_name(str(name))
            node = await converter.convert(schema, name=str(name))
            tree.body.append(
                ast.Assign(targets=[ast.Name(id=identifier, ctx=ast.Store())], value=node)
            )
            self._types.append(identifier)
            logger.debug("Converted schema '%s' to %s", name, identifier)

    async def _add_functions(self, converter: EndpointConverter, tree: ast.Module) -> None:
        used: set[str] = set()
        for path, method, operation, path_item in self._operations():
            function = await converter.convert(method, path, operation, path_item, used)
            tree.body.append(function)
            await self.runner.run(
                Checkpoint.AFTER_CONVERT_ENDPOINT, operation, function, tree, self.document
            )
            self._functions.append(function.name)
            logger.debug("Converted %s %s to %s()", method.upper(), path, function.name)

    def _operations(self) -> Iterator[tuple[str, str, dict[str, Any], dict[str, Any]]]:
        """Yield ``(path, method, operation, path_item)`` for operations to generate."""
        paths = self.document.get("paths") or {}
        for path, raw_item in list(paths.items()):
            path_item = deref(raw_item, self.document)
            if not isinstance(path_item, dict):
                continue
            for method in HTTPMethod:
                operation = path_item.get(method.value)
                if isinstance(operation, dict) and self._selected(operation):
                    yield str(path), method.value, operation, path_item

    def _selected(self, operation: dict[str, Any]) -> bool:
        tags = set(operation.get("tags") or [])
        if self.options.include_tags and not tags & set(self.options.include_tags):
            return False
        if tags & set(self.options.exclude_tags):
            return False
        if operation.get("deprecated") and not self.options.include_deprecated:
            return False
        return True

    def render(self, tree: ast.Module) -> str:
        """Render *tree* as source, prefixed with a generated-file banner."""
        try:
            source = ast.unparse(ast.fix_missing_locations(tree))
        except (AttributeError, TypeError, ValueError) as exc:
            raise GenerationError(f"Cannot render generated module: {exc}") from exc

        info = self.document.get("info") or {}
        title = info.get("title", "API")
        version = info.get("version", "")
        banner = f"# Generated by specgen from {title} {version}".rstrip()
        return f"{banner}\n# Do not edit by hand.\n\n{source}\n"

    def _write(self, file_name: str, contents: str) -> None:
        if file_name == STDOUT_NAME:
            print_data(contents)
            return
        try:
            atomic_write(Path(file_name), contents)
        except OSError as exc:
            raise GenerationError(f"Cannot write {file_name}: {exc}") from exc
        logger.info("Wrote %s", file_name)
