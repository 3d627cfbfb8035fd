"""Checkpoint definitions and the runner that invokes plugin callbacks.

This module provides two core components:

* :class:`Checkpoint` -- The fixed, ordered set of points in a generation run
  at which plugins may observe or rewrite the document and the AST. The
  declaration order of the enum *is* the run order.
* :class:`HookRunner` -- Invokes the callback for one checkpoint across all
  plugins in registration order, awaiting each before starting the next.

There is no return-value pipeline: every callback receives the same mutable
objects by reference, so later callbacks (and later checkpoints) see the
cumulative effect of all earlier edits.
"""

from __future__ import annotations

import enum
import inspect
import logging
from typing import Any, Iterable

from specgen.exceptions import PluginError
from specgen.plugins.base import CodegenPlugin, is_genuine_plugin

logger = logging.getLogger(__name__)


class Checkpoint(str, enum.Enum):
    """Lifecycle checkpoints, in the order a generation run reaches them.

    Each value is the name of the matching :class:`CodegenPlugin` slot.
    """

    INITIALIZE = "initialize"
    MODIFY_DEFAULTS = "modify_defaults"
    MODIFY_SERVERS = "modify_servers"
    BEFORE_CONVERT_ENDPOINT = "before_convert_endpoint"
    AFTER_CONVERT_ENDPOINT = "after_convert_endpoint"
    BEFORE_CONVERT_SCHEMA = "before_convert_schema"
    AFTER_CONVERT_SCHEMA = "after_convert_schema"
    AFTER_AST_GENERATE = "after_ast_generate"
    BEFORE_WRITE_TO_FILE = "before_write_to_file"
    AFTER_WRITE_TO_FILE = "after_write_to_file"

    @property
    def position(self) -> int:
        """One-based position in the run; both write checkpoints share 9."""
        index = list(Checkpoint).index(self) + 1
        return min(index, 9)


class HookRunner:
    """Runs plugin callbacks for a checkpoint, one plugin at a time.

    The runner is created by
    :meth:`~specgen.plugins.manager.PluginManager.get_hook_runner` and holds
    a snapshot of the plugin list at creation time. Authenticity is checked
    again on every call rather than once up front, so an object that was
    never registered through :func:`~specgen.plugins.base.define_plugin`
    can never have a callback invoked, however it got into the list.

    There is no fault isolation between plugins: an exception raised by a
    callback stops the checkpoint and reaches the caller as a
    :class:`~specgen.exceptions.PluginError` naming the plugin and slot.
    """

    def __init__(self, plugins: Iterable[Any]) -> None:
        """Initialize the runner.

        Args:
            plugins: Plugins in registration order. Values that are not
                genuine plugins may be present; they are skipped.
        """
        self._plugins = list(plugins)

    @property
    def plugins(self) -> list[CodegenPlugin]:
        """The genuine plugins this runner will call, in order."""
        return [plugin for plugin in self._plugins if is_genuine_plugin(plugin)]

    def has_hook(self, checkpoint: Checkpoint) -> bool:
        """Return ``True`` if any genuine plugin fills *checkpoint*'s slot."""
        return any(
            getattr(plugin, checkpoint.value) is not None for plugin in self.plugins
        )

    async def run(self, checkpoint: Checkpoint, *args: Any) -> None:
        """Invoke *checkpoint*'s callback on every genuine plugin that has one.

        Callbacks are called in registration order with *args*. A callback
        returning an awaitable is awaited to completion before the next one
        starts.

        Args:
            checkpoint: Which slot to invoke.
            *args: Positional arguments documented on the slot.

        Raises:
            PluginError: If a callback raises or its awaitable fails.
        """
        for plugin in self._plugins:
            if not is_genuine_plugin(plugin):
                continue
            callback = getattr(plugin, checkpoint.value)
            if callback is None:
                continue
            logger.debug("Running %s for plugin '%s'", checkpoint.value, plugin.name)
            try:
                result = callback(*args)
                if inspect.isawaitable(result):
                    await result
            except PluginError:
                raise
            except Exception as exc:
                raise PluginError(
                    f"Plugin '{plugin.name}' failed in {checkpoint.value}: {exc}"
                ) from exc
