"""Plugin descriptor, registrar, and authenticity predicate.

A specgen plugin is a plain :class:`CodegenPlugin` dataclass. Authors never
subclass anything -- they fill in a ``name`` and whichever lifecycle
callbacks they need, then pass the object through :func:`define_plugin`::

    from specgen.plugins import CodegenPlugin, define_plugin

    def add_auth_header(defaults, tree, document):
        defaults.value.values[1].keys.append(ast.Constant("Authorization"))
        ...

    plugin = define_plugin(
        CodegenPlugin(name="auth-header", modify_defaults=add_auth_header)
    )

:func:`define_plugin` validates the descriptor and stamps it with a hidden,
write-once authenticity marker. The host only ever invokes callbacks on
objects for which :func:`is_genuine_plugin` returns ``True``; a
``CodegenPlugin`` built by hand, a copy of a registered one, or any other
object with the same attributes is ignored.

Every callback may be a plain function or a coroutine function. Return
values are discarded: callbacks work by mutating the AST nodes and schema
dictionaries they are handed.
"""

from __future__ import annotations

import ast
import logging
import weakref
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Union

from specgen.models import GenerateOptions, OptionSpec

logger = logging.getLogger(__name__)

Document = dict[str, Any]
"""A parsed OpenAPI document, shared by reference with every callback."""

HookResult = Union[None, Awaitable[Any]]

InitializeHook = Callable[[GenerateOptions, Document], HookResult]
DeclarationHook = Callable[[ast.Assign, ast.Module, Document], HookResult]
BeforeEndpointHook = Callable[[dict[str, Any], ast.Module, Document], HookResult]
AfterEndpointHook = Callable[
    [dict[str, Any], ast.FunctionDef, ast.Module, Document], HookResult
]
BeforeSchemaHook = Callable[[dict[str, Any], ast.Module, Document], HookResult]
AfterSchemaHook = Callable[[dict[str, Any], ast.expr, ast.Module, Document], HookResult]
TreeHook = Callable[[ast.Module, Document], HookResult]
FileHook = Callable[[str, str, Document], HookResult]


@dataclass
class PluginOptions:
    """Extra command-line options a plugin contributes to ``specgen generate``.

    All declared flags are merged into a single parser after every plugin has
    been loaded. Option names are guaranteed not to collide: a plugin whose
    flags clash with a built-in option or with an earlier plugin's flags is
    rejected when it is loaded.

    Attributes:
        args: The flag specifications. Plain dicts are accepted and converted
            to :class:`~specgen.models.OptionSpec`.
        description: Help text shown for the plugin's option group.
        validator: Optional callable receiving the fully merged
            :class:`~specgen.models.GenerateOptions`. Returning ``False``
            disables the plugin for the run. Without a validator the options
            are always accepted.
    """

    args: list[OptionSpec] = field(default_factory=list)
    description: str = ""
    validator: Optional[Callable[[GenerateOptions], bool]] = None

    def __post_init__(self) -> None:
        self.args = [
            arg if isinstance(arg, OptionSpec) else OptionSpec.model_validate(arg)
            for arg in self.args
        ]

    def validate(self, options: GenerateOptions) -> bool:
        """Run the validator, treating a missing validator as acceptance."""
        if self.validator is None:
            return True
        return bool(self.validator(options))


class _AuthenticityMarker:
    """Write-once flag kept outside the instance ``__dict__``.

    Installed as a data descriptor on :class:`CodegenPlugin`, so it shadows
    anything written straight into an instance dict and refuses ordinary
    attribute assignment. Values live in a table keyed by object identity and
    are dropped when the object is garbage collected.
    """

    def __init__(self) -> None:
        self._name = "_marker"
        self._values: dict[int, bool] = {}

    def __set_name__(self, owner: type, name: str) -> None:
        self._name = name

    def __get__(self, instance: Any, owner: Optional[type] = None) -> Any:
        if instance is None:
            return self
        raise AttributeError(
            f"{type(instance).__name__!r} object has no attribute {self._name!r}"
        )

    def __set__(self, instance: Any, value: Any) -> None:
        raise AttributeError("plugins can only be marked by define_plugin()")

    def __delete__(self, instance: Any) -> None:
        raise AttributeError("plugins can only be marked by define_plugin()")

    def stamp(self, instance: CodegenPlugin, value: bool) -> None:
        key = id(instance)
        if key in self._values:
            return
        self._values[key] = value
        weakref.finalize(instance, self._values.pop, key, None)

    def read(self, instance: Any) -> bool:
        return self._values.get(id(instance), False)


@dataclass(eq=False)
class CodegenPlugin:
    """Declaration of a specgen plugin.

    Only :attr:`name` is required. Every callback slot is optional; an absent
    slot is skipped by the host without error. Callbacks run strictly one
    after another, in plugin registration order, and each is awaited when it
    returns an awaitable.

    Attributes:
        name: Non-empty identifier, used in logs and to reject duplicates.
        options: Extra CLI flags contributed by the plugin.
        initialize: ``(options, document)``. Called once the OpenAPI document
            has been loaded and before any AST is built. ``options`` includes
            the values of flags declared in :attr:`options`.
        modify_defaults: ``(defaults, tree, document)``. Receives the
            ``defaults = {...}`` assignment at the head of the generated module.
        modify_servers: ``(servers, tree, document)``. Receives the
            ``servers = {...}`` assignment at the head of the generated module.
        before_convert_endpoint: ``(operation, tree, document)``. Runs just
            before an Operation Object is turned into a function definition.
            Edits to ``operation`` are seen by the converter, including
            a changed ``operationId``, which renames the function.
        after_convert_endpoint: ``(operation, function, tree, document)``.
            Runs with the freshly built :class:`ast.FunctionDef`.
        before_convert_schema: ``(schema, tree, document)``. Runs just before
            a Schema (or Reference) Object is turned into a type expression.
            Edits to ``schema`` are seen by the converter.
        after_convert_schema: ``(schema, type_node, tree, document)``. Runs
            with the type expression that was built for ``schema``.
        after_ast_generate: ``(tree, document)``. Runs once every type and
            function has been added and before the module is rendered.
        before_write_to_file: ``(file_name, contents, document)``. Runs with
            the rendered source before it is written.
        after_write_to_file: ``(file_name, contents, document)``. Runs after
            the source has been written.
    """

    name: str = ""
    options: Optional[PluginOptions] = None
    initialize: Optional[InitializeHook] = None
    modify_defaults: Optional[DeclarationHook] = None
    modify_servers: Optional[DeclarationHook] = None
    before_convert_endpoint: Optional[BeforeEndpointHook] = None
    after_convert_endpoint: Optional[AfterEndpointHook] = None
    before_convert_schema: Optional[BeforeSchemaHook] = None
    after_convert_schema: Optional[AfterSchemaHook] = None
    after_ast_generate: Optional[TreeHook] = None
    before_write_to_file: Optional[FileHook] = None
    after_write_to_file: Optional[FileHook] = None

    _genuine = _AuthenticityMarker()


_MARKER: _AuthenticityMarker = CodegenPlugin.__dict__["_genuine"]


def define_plugin(plugin: CodegenPlugin) -> CodegenPlugin:
    """Validate *plugin* and mark it as a genuine, registered plugin.

    The only rule enforced is that :attr:`CodegenPlugin.name` is a non-empty
    string. A plugin that breaks it is *not* rejected with an exception --
    one warning is logged and the plugin is marked inauthentic, so the host
    silently skips it while the rest of the run carries on.

    The marker is attached to *plugin* itself, which is returned unchanged.
    It is write-once: registering the same object again returns it with the
    marker from the first registration.

    Args:
        plugin: The descriptor to register.

    Returns:
        The same *plugin* object.

    Raises:
        TypeError: If *plugin* is not a :class:`CodegenPlugin`.
    """
    if not isinstance(plugin, CodegenPlugin):
        raise TypeError(
            f"define_plugin() expects a CodegenPlugin, got {type(plugin).__name__}"
        )

    name = plugin.name
    valid = isinstance(name, str) and bool(name.strip())
    if not valid:
        logger.warning(
            "define_plugin: 'name' property is required; plugin will be ignored"
        )
    _MARKER.stamp(plugin, valid)
    return plugin


def is_genuine_plugin(value: object) -> bool:
    """Return ``True`` only for plugins that passed :func:`define_plugin`.

    Safe to call with any value: ``None``, scalars, dicts, look-alike
    objects, and unregistered or rejected ``CodegenPlugin`` instances all
    yield ``False``.
    """
    if not issubclass(type(value), CodegenPlugin):
        return False
    return _MARKER.read(value)
