"""Convert OpenAPI Operation Objects into Python function definitions.

Each operation becomes one module-level function that calls the ``_request``
helper from the generated head::

    def get_pet_by_id(pet_id: int, *, x_trace: Optional[str] = None) -> "Pet":
        # docstring from summary and description
        return _request("GET", "/pets/{petId}", path_params={"petId": pet_id},
                        headers={"X-Trace": x_trace})

**Mapping rules:**

* Path parameters become positional arguments.
* Query and header parameters become keyword-only arguments; optional ones
  default to ``None``. Cookie parameters are skipped.
* A request body becomes a keyword-only ``body`` argument, sent as JSON,
  form data, multipart files, or raw content depending on its media type.
* The return annotation comes from the first 2xx response with content;
  ``None`` when the success response has no content, ``Any`` otherwise.

The ``before_convert_endpoint`` checkpoint runs before any of this is read,
so plugins may rename, retag, or reshape the operation first.
"""

from __future__ import annotations

import ast
import logging
from typing import Any, Optional

from specgen.generator.naming import function_name, snake_case
from specgen.generator.types import TypeConverter, any_node, name_node, subscript
from specgen.parser.resolver import deref
from specgen.plugins.hooks import Checkpoint, HookRunner

logger = logging.getLogger(__name__)

_BODY_ARGUMENTS = (
    ("application/json", "json"),
    ("+json", "json"),
    ("application/x-www-form-urlencoded", "data"),
    ("multipart/form-data", "files"),
)


class EndpointConverter:
    """Builds function definitions for operations, firing endpoint checkpoints.

    Args:
        document: The OpenAPI document.
        tree: The module under construction.
        runner: Invokes plugin callbacks.
        types: Converter used for parameter, body, and response schemas.
    """

    def __init__(
        self,
        document: dict[str, Any],
        tree: ast.Module,
        runner: HookRunner,
        types: TypeConverter,
    ) -> None:
        self._document = document
        self._tree = tree
        self._runner = runner
        self._types = types

    async def convert(
        self,
        method: str,
        path: str,
        operation: dict[str, Any],
        path_item: Optional[dict[str, Any]] = None,
        used: Optional[set[str]] = None,
    ) -> ast.FunctionDef:
        """Run ``before_convert_endpoint`` and build the function for *operation*.

        The function name is taken from the operation as the checkpoint left
        it. The ``after_convert_endpoint`` checkpoint is left to the caller,
        which first places the function in the tree.

        Args:
            method: Lowercase HTTP method.
            path: The path template, e.g. ``/pets/{petId}``.
            operation: The Operation Object. Edits made by plugins in
                ``before_convert_endpoint`` are honoured.
            path_item: The enclosing Path Item, for shared parameters.
            used: Function names already taken in the module. The new name
                gets a numeric suffix on a clash and is added to the set.
        """
        await self._runner.run(
            Checkpoint.BEFORE_CONVERT_ENDPOINT, operation, self._tree, self._document
        )
        name = function_name(operation.get("operationId"), method, path)
        if used is not None:
            base, counter = name, 2
            while name in used:
                name = f"{base}_{counter}"
                counter += 1
            used.add(name)

        args = ast.arguments(
            posonlyargs=[], args=[], vararg=None, kwonlyargs=[], kw_defaults=[],
            kwarg=None, defaults=[],
        )
        groups: dict[str, list[tuple[str, str]]] = {"path": [], "query": [], "header": []}
        used: set[str] = set()

        for param in self._parameters(operation, path_item):
            location = param.get("in")
            if location not in groups:
                logger.debug("Skipping %s parameter '%s'", location, param.get("name"))
                continue
            arg_name = _unique(snake_case(str(param["name"])), used, location)
            annotation = await self._types.convert(param.get("schema"))
            required = location == "path" or bool(param.get("required"))
            if location == "path":
                args.args.append(ast.arg(arg=arg_name, annotation=annotation))
            else:
                _add_keyword(args, arg_name, annotation, required)
            groups[location].append((str(param["name"]), arg_name))

        body_kind = await self._add_body(args, operation, used)
        returns = await self._return_type(operation)

        call_keywords = [
            ast.keyword(arg=keyword, value=_mapping(pairs))
            for keyword, pairs in (
                ("path_params", groups["path"]),
                ("query", groups["query"]),
                ("headers", groups["header"]),
            )
            if pairs
        ]
        if body_kind is not None:
            call_keywords.append(ast.keyword(arg=body_kind[0], value=name_node(body_kind[1])))

        call = ast.Call(
            func=name_node("_request"),
            args=[ast.Constant(value=method.upper()), ast.Constant(value=path)],
            keywords=call_keywords,
        )
        body: list[ast.stmt] = []
        docstring = _docstring(operation)
        if docstring:
            body.append(ast.Expr(value=ast.Constant(value=docstring)))
        body.append(ast.Return(value=call))

        function = ast.FunctionDef(
            name=name,
            args=args,
            body=body,
            decorator_list=[],
            returns=returns,
            type_params=[],
        )
        return ast.fix_missing_locations(function)

    def _parameters(
        self, operation: dict[str, Any], path_item: Optional[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        """Merge path-level and operation-level parameters, operation winning."""
        merged: dict[tuple[str, str], dict[str, Any]] = {}
        for source in ((path_item or {}).get("parameters"), operation.get("parameters")):
            for raw in source or []:
                param = deref(raw, self._document)
                if isinstance(param, dict) and "name" in param:
                    merged[(str(param["name"]), str(param.get("in")))] = param
        return list(merged.values())

    async def _add_body(
        self, args: ast.arguments, operation: dict[str, Any], used: set[str]
    ) -> Optional[tuple[str, str]]:
        request_body = deref(operation.get("requestBody"), self._document)
        if not isinstance(request_body, dict):
            return None
        content = request_body.get("content") or {}
        if not content:
            return None

        media_type, media = _pick_media(content)
        keyword = "content"
        for marker, candidate in _BODY_ARGUMENTS:
            if marker in media_type:
                keyword = candidate
                break

        arg_name = _unique("body", used, "request")
        annotation = await self._types.convert((media or {}).get("schema"))
        _add_keyword(args, arg_name, annotation, bool(request_body.get("required")))
        return keyword, arg_name

    async def _return_type(self, operation: dict[str, Any]) -> ast.expr:
        responses = operation.get("responses") or {}
        for status in sorted(str(code) for code in responses):
            if not status.startswith("2"):
                continue
            response = deref(responses.get(status, responses.get(_as_int(status))), self._document)
            if not isinstance(response, dict):
                continue
            content = response.get("content") or {}
            if not content:
                return ast.Constant(value=None)
            _, media = _pick_media(content)
            return await self._types.convert((media or {}).get("schema"))
        return any_node()


def _pick_media(content: dict[str, Any]) -> tuple[str, Any]:
    for media_type, media in content.items():
        if "json" in media_type:
            return media_type, media
    media_type = next(iter(content))
    return media_type, content[media_type]


def _as_int(status: str) -> Any:
    return int(status) if status.isdigit() else status


def _unique(name: str, used: set[str], suffix: str) -> str:
    if name in used:
        name = f"{name}_{suffix}"
    while name in used:
        name = f"{name}_"
    used.add(name)
    return name


def _add_keyword(
    args: ast.arguments, name: str, annotation: ast.expr, required: bool
) -> None:
    if not required:
        annotation = subscript("Optional", annotation)
    args.kwonlyargs.append(ast.arg(arg=name, annotation=annotation))
    args.kw_defaults.append(None if required else ast.Constant(value=None))


def _mapping(pairs: list[tuple[str, str]]) -> ast.Dict:
    return ast.Dict(
        keys=[ast.Constant(value=key) for key, _ in pairs],
        values=[name_node(arg) for _, arg in pairs],
    )


def _docstring(operation: dict[str, Any]) -> str:
    parts = [
        str(operation[key]).strip()
        for key in ("summary", "description")
        if operation.get(key)
    ]
    if operation.get("deprecated"):
        parts.append("Deprecated.")
    return "\n\n".join(parts)
