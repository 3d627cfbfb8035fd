"""Plugin system for specgen -- registration, authenticity, and lifecycle hooks.

Plugins observe and rewrite the generator's intermediate representation (a
Python :mod:`ast` tree plus the raw OpenAPI document) at a fixed sequence of
checkpoints. They are declared as plain :class:`CodegenPlugin` objects and
must pass through :func:`define_plugin` before the host will call them.

Key names:

* :class:`CodegenPlugin` -- The plugin descriptor (name, options, callbacks).
* :class:`PluginOptions` -- Extra CLI flags a plugin contributes.
* :func:`define_plugin` -- Validates a descriptor and marks it genuine.
* :func:`is_genuine_plugin` -- The check the host makes before every callback.
* :class:`Checkpoint` -- The ordered lifecycle checkpoints.
* :class:`HookRunner` -- Invokes one checkpoint across plugins, sequentially.
* :class:`PluginManager` -- Loads plugins, merges and validates their options.

Example:
    A plugin that strips ``x-internal`` properties before types are built::

        from specgen.plugins import CodegenPlugin, define_plugin

        def drop_internal(schema, tree, document):
            for prop in list(schema.get("properties", {})):
                if schema["properties"][prop].get("x-internal"):
                    del schema["properties"][prop]

        plugin = define_plugin(
            CodegenPlugin(name="drop-internal", before_convert_schema=drop_internal)
        )
"""

from specgen.plugins.base import (
    CodegenPlugin,
    PluginOptions,
    define_plugin,
    is_genuine_plugin,
)
from specgen.plugins.hooks import Checkpoint, HookRunner
from specgen.plugins.manager import PluginManager

__all__ = [
    "CodegenPlugin",
    "PluginOptions",
    "define_plugin",
    "is_genuine_plugin",
    "Checkpoint",
    "HookRunner",
    "PluginManager",
]
