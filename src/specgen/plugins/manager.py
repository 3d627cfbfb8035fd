"""Plugin manager -- loading, option merging, validation, and hook runner access.

This module contains :class:`PluginManager`, the host-side coordinator for
registered plugins. It accepts only genuine plugins (see
:func:`~specgen.plugins.base.is_genuine_plugin`), merges the command-line
options they contribute into a single click parameter list, rejects plugins
whose options collide with built-in or previously declared options, runs
option validators, and hands out a :class:`~specgen.plugins.hooks.HookRunner`
over the active plugins in registration order.

Plugins are given to the manager explicitly, either as objects or as import
paths of the form ``package.module:attribute``::

    manager = PluginManager()
    manager.load_paths(["specgen_rename.plugin:plugin"])
    runner = manager.get_hook_runner()
"""

from __future__ import annotations

import importlib
import logging
from typing import Any, Iterable, Optional

import click
from click.core import ParameterSource

from specgen.exceptions import InvalidUsageError, PluginError
from specgen.models import BUILTIN_OPTION_NAMES, GenerateOptions, OptionSpec, OptionType
from specgen.plugins.base import CodegenPlugin, is_genuine_plugin
from specgen.plugins.hooks import HookRunner

logger = logging.getLogger(__name__)

DEFAULT_ATTRIBUTE = "plugin"
"""Attribute looked up when an import path has no ``:attribute`` part."""

_RESERVED_DESTS = frozenset(GenerateOptions.model_fields) | frozenset(dir(GenerateOptions))
"""Destinations a plugin option may not store under: built-in settings and
attributes of the options model, which would hide the plugin value."""

_CLICK_TYPES: dict[OptionType, click.ParamType] = {
    OptionType.STRING: click.STRING,
    OptionType.INTEGER: click.INT,
    OptionType.NUMBER: click.FLOAT,
}


class PluginManager:
    """Loads plugins and manages their options for a single generation run.

    Plugins are kept in registration order, which is the order their
    callbacks run in at every checkpoint. A plugin is refused at load time
    when it is not genuine, when its name is already taken, or when any of
    its option flags or value destinations clashes with a built-in
    ``generate`` option or with one declared by an earlier plugin. Refused
    plugins contribute nothing.

    Example:
        Typical usage::

            manager = PluginManager()
            manager.load_plugins([rename_plugin, docs_plugin])
            values = manager.parse_plugin_args(["--rename-style", "snake"])
            manager.validate_options(options)
            runner = manager.get_hook_runner()
    """

    def __init__(self) -> None:
        self._plugins: dict[str, CodegenPlugin] = {}
        self._option_owners: dict[str, str] = {}
        self._dest_owners: dict[str, str] = {}
        self._disabled: set[str] = set()
        self._hook_runner: Optional[HookRunner] = None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_plugin(self, plugin: Any) -> None:
        """Register a single plugin.

        Args:
            plugin: A value returned by
                :func:`~specgen.plugins.base.define_plugin`.

        Raises:
            PluginError: If *plugin* is not genuine, its name is already
                loaded, or one of its option flags is already taken. The
                manager is left unchanged in every case.
        """
        if not is_genuine_plugin(plugin):
            raise PluginError(
                f"{plugin!r} is not a registered plugin; wrap it with define_plugin()"
            )

        name = plugin.name
        if name in self._plugins:
            raise PluginError(f"Plugin '{name}' is already loaded")

        flags, dests = self._check_options(plugin)
        for key in flags:
            self._option_owners[key] = name
        for dest in dests:
            self._dest_owners[dest] = name
        self._plugins[name] = plugin
        self._hook_runner = None
        logger.info("Loaded plugin '%s'", name)

    def load_plugins(self, plugins: Iterable[Any]) -> list[str]:
        """Register several plugins, skipping any that are refused.

        Returns:
            Names of the plugins that were loaded, in order. Refused plugins
            are logged as warnings.
        """
        loaded: list[str] = []
        for plugin in plugins:
            try:
                self.load_plugin(plugin)
            except PluginError as exc:
                logger.warning("Skipping plugin: %s", exc)
                continue
            loaded.append(plugin.name)
        return loaded

    def load_from_path(self, path: str) -> CodegenPlugin:
        """Import the plugin object named by *path* and register it.

        Args:
            path: ``package.module:attribute``. Without ``:attribute`` the
                module's ``plugin`` attribute is used.

        Returns:
            The loaded plugin.

        Raises:
            PluginError: If the module cannot be imported, the attribute is
                missing, or the object is refused by :meth:`load_plugin`.
        """
        module_name, _, attribute = path.partition(":")
        attribute = attribute or DEFAULT_ATTRIBUTE
        try:
            module = importlib.import_module(module_name)
        except ImportError as exc:
            raise PluginError(f"Cannot import plugin module '{module_name}': {exc}") from exc

        try:
            plugin = getattr(module, attribute)
        except AttributeError:
            raise PluginError(
                f"Module '{module_name}' has no attribute '{attribute}'"
            ) from None

        self.load_plugin(plugin)
        return plugin

    def load_paths(self, paths: Iterable[str]) -> list[str]:
        """Import and register plugins by path, skipping failures with a warning."""
        loaded: list[str] = []
        for path in paths:
            try:
                plugin = self.load_from_path(path)
            except PluginError as exc:
                logger.warning("Failed to load plugin '%s': %s", path, exc)
                continue
            loaded.append(plugin.name)
        return loaded

    def _check_options(self, plugin: CodegenPlugin) -> tuple[list[str], list[str]]:
        """Return the flag keys and destinations *plugin* would claim.

        Raises:
            PluginError: On the first flag or destination already taken by a
                built-in option, an earlier plugin, or *plugin* itself.
        """
        if plugin.options is None:
            return [], []

        claimed: list[str] = []
        dests: list[str] = []
        for spec in plugin.options.args:
            if spec.dest in _RESERVED_DESTS:
                raise PluginError(
                    f"Plugin '{plugin.name}' option '{spec.name}' shadows the "
                    f"built-in '{spec.dest}' setting"
                )
            for flag in spec.flags:
                key = flag.lstrip("-")
                if key in BUILTIN_OPTION_NAMES:
                    raise PluginError(
                        f"Plugin '{plugin.name}' option '{flag}' collides with a "
                        "built-in option"
                    )
                owner = self._option_owners.get(key)
                if owner is not None or key in claimed:
                    raise PluginError(
                        f"Plugin '{plugin.name}' option '{flag}' is already "
                        f"declared by plugin '{owner or plugin.name}'"
                    )
                claimed.append(key)
            owner = self._dest_owners.get(spec.dest)
            if owner is not None or spec.dest in dests:
                raise PluginError(
                    f"Plugin '{plugin.name}' option '{spec.name}' stores its value "
                    f"under '{spec.dest}', already used by plugin '{owner or plugin.name}'"
                )
            dests.append(spec.dest)
        return claimed, dests

    # ------------------------------------------------------------------
    # Querying
    # ------------------------------------------------------------------

    def get_plugin(self, name: str) -> CodegenPlugin:
        """Retrieve a loaded plugin by name.

        Raises:
            PluginError: If no plugin with the given *name* is loaded.
        """
        try:
            return self._plugins[name]
        except KeyError:
            raise PluginError(f"Plugin '{name}' is not loaded") from None

    def list_plugins(self) -> list[dict[str, Any]]:
        """List loaded plugins with their options and enabled state."""
        return [
            {
                "name": name,
                "enabled": name not in self._disabled,
                "options": [spec.name for spec in _option_specs(plugin)],
                "description": plugin.options.description if plugin.options else "",
            }
            for name, plugin in self._plugins.items()
        ]

    def option_specs(self) -> list[tuple[str, OptionSpec]]:
        """Every contributed option as ``(plugin name, spec)`` in load order."""
        return [
            (name, spec)
            for name, plugin in self._plugins.items()
            for spec in _option_specs(plugin)
        ]

    # ------------------------------------------------------------------
    # Options
    # ------------------------------------------------------------------

    def build_option_params(self) -> list[click.Option]:
        """Return the merged click options contributed by all loaded plugins."""
        return [_to_click_option(spec) for _, spec in self.option_specs()]

    def default_plugin_values(self) -> dict[str, Any]:
        """Declared default for every contributed option, keyed by destination."""
        return {spec.dest: spec.default for _, spec in self.option_specs()}

    def parse_plugin_args(self, args: Iterable[str]) -> dict[str, Any]:
        """Parse leftover command-line tokens against the merged plugin options.

        Only options actually present in *args* are returned; declared
        defaults come from :meth:`default_plugin_values`.

        Raises:
            InvalidUsageError: If *args* contains an unknown flag or a value
                of the wrong type.
        """
        command = click.Command(
            "generate",
            params=self.build_option_params(),
            add_help_option=False,
        )
        try:
            ctx = command.make_context("specgen generate", list(args))
        except click.ClickException as exc:
            raise InvalidUsageError(exc.format_message()) from exc

        return {
            key: value
            for key, value in ctx.params.items()
            if ctx.get_parameter_source(key) != ParameterSource.DEFAULT
        }

    def validate_options(self, options: GenerateOptions) -> list[str]:
        """Run every plugin's option validator against the merged *options*.

        A plugin whose validator returns ``False`` is disabled for the rest of
        the run: it stays listed but is left out of the hook runner. Other
        plugins are unaffected.

        Returns:
            Names of the plugins that were disabled.

        Raises:
            PluginError: If a validator raises.
        """
        disabled: list[str] = []
        for name, plugin in self._plugins.items():
            if plugin.options is None or name in self._disabled:
                continue
            try:
                accepted = plugin.options.validate(options)
            except Exception as exc:
                raise PluginError(
                    f"Plugin '{name}' option validator raised: {exc}"
                ) from exc
            if not accepted:
                logger.warning(
                    "Plugin '%s' rejected the supplied options and is disabled", name
                )
                self._disabled.add(name)
                disabled.append(name)

        if disabled:
            self._hook_runner = None
        return disabled

    # ------------------------------------------------------------------
    # Hook runner
    # ------------------------------------------------------------------

    def get_hook_runner(self) -> HookRunner:
        """Return a :class:`~specgen.plugins.hooks.HookRunner` over the enabled plugins.

        The runner is cached and rebuilt whenever a plugin is loaded or
        disabled.
        """
        if self._hook_runner is None:
            self._hook_runner = HookRunner(
                plugin
                for name, plugin in self._plugins.items()
                if name not in self._disabled
            )
        return self._hook_runner


def _option_specs(plugin: CodegenPlugin) -> list[OptionSpec]:
    return list(plugin.options.args) if plugin.options else []


def _to_click_option(spec: OptionSpec) -> click.Option:
    decls = [*spec.flags, spec.dest]
    if spec.type == OptionType.BOOLEAN:
        return click.Option(
            decls, is_flag=True, default=bool(spec.default), help=spec.help
        )
    return click.Option(
        decls, type=_CLICK_TYPES[spec.type], default=spec.default, help=spec.help
    )
