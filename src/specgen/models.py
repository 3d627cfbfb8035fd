"""Canonical Pydantic models shared across all specgen modules.

This is the single source of truth for data shapes in the project. The models
fall into two groups:

**Configuration models** -- built from CLI flags, environment variables, and
an optional project ``specgen.json``:
    :class:`GenerateOptions` and :class:`ProjectConfig`.

**Plugin option models** -- declared by plugin authors and merged by the
:class:`~specgen.plugins.manager.PluginManager` into the CLI:
    :class:`OptionType` and :class:`OptionSpec`.

The OpenAPI document itself is deliberately *not* modelled: plugins receive
the raw ``dict`` and may rewrite any part of it, so the generator always
reads the live dictionary rather than a validated snapshot.
"""

from __future__ import annotations

import enum
import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- Plugin options ---


class OptionType(str, enum.Enum):
    """Value types a plugin-contributed command-line option may take."""

    STRING = "string"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    NUMBER = "number"


_OPTION_NAME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9_-]*$")


class OptionSpec(BaseModel):
    """A single command-line flag contributed by a plugin.

    The flag is rendered as ``--<name>`` plus one ``-x``/``--xyz`` form per
    alias. Its parsed value is stored on :class:`GenerateOptions` under the
    snake_case form of *name* (``--rename-style`` becomes ``rename_style``).

    Option names must not collide with the built-in ``generate`` options or
    with options declared by any previously loaded plugin; the plugin manager
    rejects such plugins at load time.

    Example::

        OptionSpec(name="rename-style", type="string", default="camel",
                   help="Casing applied to property names.", aliases=["r"])
    """

    name: str = Field(description="Long flag name without leading dashes")
    type: OptionType = OptionType.STRING
    default: Any = None
    help: str = ""
    aliases: list[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        value = value.lstrip("-")
        if not _OPTION_NAME_RE.match(value):
            raise ValueError(f"invalid option name: {value!r}")
        return value

    @property
    def dest(self) -> str:
        """Attribute name the parsed value is stored under."""
        return self.name.replace("-", "_")

    @property
    def flags(self) -> list[str]:
        """Every flag spelling this option answers to, long form first."""
        names = [f"--{self.name}"]
        for alias in self.aliases:
            alias = alias.lstrip("-")
            names.append(f"-{alias}" if len(alias) == 1 else f"--{alias}")
        return names


# --- Generator configuration ---


class GenerateOptions(BaseModel):
    """Fully merged options for a single generation run.

    Built by :func:`~specgen.config.resolve_options` from CLI flags,
    ``SPECGEN_*`` environment variables, and the project ``specgen.json``.
    Plugin-contributed option values are merged in as extra fields, which
    keeps them reachable both as attributes (``options.rename_style``) and
    through ``model_extra``.

    This object is what :attr:`CodegenPlugin.initialize
    <specgen.plugins.base.CodegenPlugin.initialize>` and every
    :attr:`PluginOptions.validator <specgen.plugins.base.PluginOptions.validator>`
    receive.
    """

    model_config = ConfigDict(extra="allow")

    spec: str = Field(description="URL, file path, or '-' for stdin")
    output: Optional[str] = Field(
        default=None, description="Destination file; stdout when unset"
    )
    base_url: Optional[str] = Field(
        default=None, description="Override the first server URL in `defaults`"
    )
    include_tags: list[str] = Field(
        default_factory=list, description="Only generate operations with these tags"
    )
    exclude_tags: list[str] = Field(
        default_factory=list, description="Skip operations with these tags"
    )
    include_deprecated: bool = Field(
        default=True, description="Generate functions for deprecated operations"
    )
    plugins: list[str] = Field(
        default_factory=list, description="Plugin import paths (module:attribute)"
    )

    @property
    def plugin_values(self) -> dict[str, Any]:
        """Values contributed by plugin options, keyed by destination name."""
        return dict(self.model_extra or {})


BUILTIN_OPTION_NAMES = frozenset(
    {
        "spec",
        "output",
        "o",
        "base-url",
        "include-tag",
        "exclude-tag",
        "include-deprecated",
        "no-include-deprecated",
        "plugin",
        "P",
        "help",
    }
)
"""Flag names reserved by ``specgen generate``; plugins may not reuse them."""


class ProjectConfig(BaseModel):
    """Project-local defaults read from ``specgen.json``.

    Every field is optional. Values here have the lowest precedence and are
    overridden by ``SPECGEN_*`` environment variables and CLI flags. The
    ``plugin_options`` table supplies defaults for plugin-contributed flags.

    Example ``specgen.json``::

        {
          "spec": "openapi.yaml",
          "output": "src/client/api.py",
          "plugins": ["specgen_rename.plugin:plugin"],
          "plugin_options": {"rename_style": "snake"}
        }
    """

    spec: Optional[str] = None
    output: Optional[str] = None
    base_url: Optional[str] = None
    include_tags: list[str] = Field(default_factory=list)
    exclude_tags: list[str] = Field(default_factory=list)
    include_deprecated: Optional[bool] = None
    plugins: list[str] = Field(default_factory=list)
    plugin_options: dict[str, Any] = Field(default_factory=dict)


class HTTPMethod(str, enum.Enum):
    """HTTP methods recognised by OpenAPI 3.x path-item objects, in document order."""

    GET = "get"
    PUT = "put"
    POST = "post"
    DELETE = "delete"
    OPTIONS = "options"
    HEAD = "head"
    PATCH = "patch"
    TRACE = "trace"


class GenerationResult(BaseModel):
    """What a finished :class:`~specgen.generator.pipeline.GenerationPipeline` produced."""

    file_name: str
    contents: str
    functions: list[str] = Field(default_factory=list)
    types: list[str] = Field(default_factory=list)
