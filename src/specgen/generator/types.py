"""Convert OpenAPI Schema Objects into Python type expressions.

:class:`TypeConverter` walks a schema and builds an :class:`ast.expr` usable
as an annotation in the generated module. Every schema it visits -- the
top-level one and every nested property, item, or union member -- is passed
through the ``before_convert_schema`` and ``after_convert_schema``
checkpoints, so plugins can rewrite a schema just before it is read and
adjust the node built for it just after.

**Mapping rules:**

* ``$ref`` to ``#/components/schemas/X`` -- the string forward reference
  ``"X"``, so definition order never matters.
* ``enum`` / ``const`` -- ``Literal[...]``.
* ``oneOf`` / ``anyOf`` -- ``Union[...]``; ``allOf`` with one member is that
  member, otherwise ``dict[str, Any]``.
* ``string`` -- ``str`` (``bytes`` for ``format: binary``), ``integer`` --
  ``int``, ``number`` -- ``float``, ``boolean`` -- ``bool``.
* ``array`` -- ``list[<items>]``; ``object`` with a schema for
  ``additionalProperties`` -- ``dict[str, <value>]``.
* Component-level objects with ``properties`` -- a functional
  ``TypedDict("Name", {...}, total=False)`` with required keys wrapped in
  ``Required[...]``. Inline objects become ``dict[str, Any]``.
* ``nullable: true`` (3.0) or a ``"null"`` member in ``type`` (3.1) --
  ``Optional[...]``.

Anything else becomes ``Any``.
"""

from __future__ import annotations

import ast
from typing import Any, Optional

from specgen.generator.naming import type_name
from specgen.parser.resolver import deref, ref_name
from specgen.plugins.hooks import Checkpoint, HookRunner

_PRIMITIVES = {
    "string": "str",
    "integer": "int",
    "number": "float",
    "boolean": "bool",
}


def name_node(identifier: str) -> ast.Name:
    return ast.Name(id=identifier, ctx=ast.Load())


def subscript(base: str, *members: ast.expr) -> ast.Subscript:
    """Build ``base[member]`` or ``base[m1, m2, ...]``."""
    index: ast.expr = members[0] if len(members) == 1 else ast.Tuple(
        elts=list(members), ctx=ast.Load()
    )
    return ast.Subscript(value=name_node(base), slice=index, ctx=ast.Load())


def any_node() -> ast.Name:
    return name_node("Any")


def dict_of(value: ast.expr) -> ast.Subscript:
    return subscript("dict", name_node("str"), value)


class TypeConverter:
    """Builds annotation expressions for schemas, firing schema checkpoints.

    Args:
        document: The OpenAPI document, used to follow non-schema ``$ref``
            values and passed to every callback.
        tree: The module under construction, passed to every callback.
        runner: Invokes plugin callbacks.
    """

    def __init__(
        self, document: dict[str, Any], tree: ast.Module, runner: HookRunner
    ) -> None:
        self._document = document
        self._tree = tree
        self._runner = runner

    async def convert(self, schema: Any, name: Optional[str] = None) -> ast.expr:
        """Convert *schema* to a type expression.

        Args:
            schema: A Schema or Reference Object. Non-dict values (a missing
                schema, or the 3.1 boolean schemas) become ``Any`` without
                firing any checkpoint.
            name: The component name when converting an entry of
                ``components.schemas``; enables ``TypedDict`` output.
        """
        if not isinstance(schema, dict):
            return any_node()

        await self._runner.run(
            Checkpoint.BEFORE_CONVERT_SCHEMA, schema, self._tree, self._document
        )
        node = await self._convert(schema, name)
        await self._runner.run(
            Checkpoint.AFTER_CONVERT_SCHEMA, schema, node, self._tree, self._document
        )
        return node

    async def _convert(self, schema: dict[str, Any], name: Optional[str]) -> ast.expr:
        if "$ref" in schema:
            component = ref_name(schema["$ref"])
            if component is not None:
                return ast.Constant(value=type_name(component))
            return await self._convert(deref(schema, self._document), name)

        nullable = bool(schema.get("nullable"))
        schema_type = schema.get("type")
        types: list[str] = []
        if isinstance(schema_type, list):
            nullable = nullable or "null" in schema_type
            types = [t for t in schema_type if t != "null"]
        elif isinstance(schema_type, str):
            if schema_type == "null":
                return ast.Constant(value=None)
            types = [schema_type]

        node = await self._convert_shape(schema, types, name)
        if nullable or (isinstance(schema.get("enum"), list) and None in schema["enum"]):
            return subscript("Optional", node)
        return node

    async def _convert_shape(
        self, schema: dict[str, Any], types: list[str], name: Optional[str]
    ) -> ast.expr:
        if isinstance(schema.get("enum"), list):
            values = [v for v in schema["enum"] if v is not None]
            if values:
                return subscript("Literal", *(ast.Constant(value=v) for v in values))
        if "const" in schema:
            return subscript("Literal", ast.Constant(value=schema["const"]))

        for key in ("oneOf", "anyOf"):
            if isinstance(schema.get(key), list) and schema[key]:
                return await self._union(schema[key])

        if isinstance(schema.get("allOf"), list) and schema["allOf"]:
            members = [await self.convert(member) for member in schema["allOf"]]
            if len(members) == 1:
                return members[0]
            return dict_of(any_node())

        if len(types) > 1:
            return await self._union(
                [{**schema, "type": t, "nullable": False} for t in types], hooks=False
            )

        kind = types[0] if types else None
        if kind is None and "properties" in schema:
            kind = "object"

        if kind == "array":
            return subscript("list", await self.convert(schema.get("items")))
        if kind == "object":
            return await self._object(schema, name)
        if kind == "string" and schema.get("format") == "binary":
            return name_node("bytes")
        if kind in _PRIMITIVES:
            return name_node(_PRIMITIVES[kind])
        return any_node()

    async def _union(self, members: list[Any], hooks: bool = True) -> ast.expr:
        nodes: list[ast.expr] = []
        for member in members:
            if hooks:
                nodes.append(await self.convert(member))
            else:
                nodes.append(await self._convert(member, None))
        if len(nodes) == 1:
            return nodes[0]
        return subscript("Union", *nodes)

    async def _object(self, schema: dict[str, Any], name: Optional[str]) -> ast.expr:
        properties = schema.get("properties")
        if name is not None and isinstance(properties, dict) and properties:
            required = set(schema.get("required") or [])
            keys: list[Optional[ast.expr]] = []
            values: list[ast.expr] = []
            for prop_name, prop_schema in list(properties.items()):
                prop_node = await self.convert(prop_schema)
                if prop_name in required:
                    prop_node = subscript("Required", prop_node)
                keys.append(ast.Constant(value=prop_name))
                values.append(prop_node)
            return ast.Call(
                func=name_node("TypedDict"),
                args=[ast.Constant(value=type_name(name)), ast.Dict(keys=keys, values=values)],
                keywords=[ast.keyword(arg="total", value=ast.Constant(value=False))],
            )

        additional = schema.get("additionalProperties")
        if isinstance(additional, dict) and additional:
            return dict_of(await self.convert(additional))
        return dict_of(any_node())
