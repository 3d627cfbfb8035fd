"""Configuration resolution, XDG data paths, and atomic file writes.

This module handles everything specgen reads or writes outside the
generation itself:

* **Project config** -- an optional ``specgen.json`` found in the working
  directory or any parent, deserialised into
  :class:`~specgen.models.ProjectConfig`. See :func:`load_project_config`.
* **Precedence resolution** -- :func:`resolve_options` merges CLI flags,
  ``SPECGEN_*`` environment variables, the project config, plugin option
  defaults, and built-in defaults into one
  :class:`~specgen.models.GenerateOptions`.
* **Data directory** -- XDG-aware location for crash logs
  (:func:`get_data_dir`).
* **Atomic writes** -- :func:`atomic_write` writes generated modules via a
  temp file and rename so a failed run never leaves half a file behind.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from specgen.exceptions import ConfigError, InvalidUsageError
from specgen.models import GenerateOptions, ProjectConfig

_APP_NAME = "specgen"
_PROJECT_CONFIG_FILENAME = "specgen.json"

ENV_SPEC = "SPECGEN_SPEC"
ENV_OUTPUT = "SPECGEN_OUTPUT"
ENV_BASE_URL = "SPECGEN_BASE_URL"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/specgen/`` (default ``~/.local/share/specgen/``).
    On macOS/Windows: ``~/.specgen/``.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_DATA_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".local" / "share"
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Write *data* to *path* atomically using a temp file + rename.

    The temporary file lives in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is removed and the original exception re-raised.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Project config ---


def find_project_config(start: Optional[Path] = None) -> Optional[Path]:
    """Return the nearest ``specgen.json`` at or above *start* (default: cwd)."""
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / _PROJECT_CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def load_project_config(start: Optional[Path] = None) -> ProjectConfig:
    """Load the nearest ``specgen.json``.

    Returns:
        The parsed :class:`~specgen.models.ProjectConfig`, or an empty one
        when no file is found.

    Raises:
        ConfigError: If the file exists but is not valid JSON or does not
            match the expected shape.
    """
    path = find_project_config(start)
    if path is None:
        return ProjectConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return ProjectConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc


# --- Precedence resolution ---


def resolve_options(
    cli: Optional[dict[str, Any]] = None,
    plugin_defaults: Optional[dict[str, Any]] = None,
    plugin_values: Optional[dict[str, Any]] = None,
    project: Optional[ProjectConfig] = None,
) -> GenerateOptions:
    """Merge every configuration source into a :class:`GenerateOptions`.

    Precedence (high to low):
        1. CLI flags (*cli*, entries set to ``None`` or empty lists are
           treated as absent) and parsed plugin flags (*plugin_values*)
        2. Environment variables (``SPECGEN_SPEC``, ``SPECGEN_OUTPUT``,
           ``SPECGEN_BASE_URL``)
        3. Project config (``specgen.json``), including ``plugin_options``
        4. Plugin option defaults (*plugin_defaults*)
        5. Built-in defaults

    Raises:
        InvalidUsageError: If no spec source is given anywhere.
        ConfigError: If the project config cannot be read.
    """
    if project is None:
        project = load_project_config()

    merged: dict[str, Any] = dict(plugin_defaults or {})
    merged.update(project.plugin_options)
    merged.update(project.model_dump(exclude={"plugin_options"}, exclude_none=True))

    for key, env_var in (("spec", ENV_SPEC), ("output", ENV_OUTPUT), ("base_url", ENV_BASE_URL)):
        value = os.environ.get(env_var)
        if value:
            merged[key] = value

    for key, value in (cli or {}).items():
        if value is None or value == [] or value == ():
            continue
        merged[key] = list(value) if isinstance(value, tuple) else value
    merged.update(plugin_values or {})

    if not merged.get("spec"):
        raise InvalidUsageError(
            "No spec given. Pass SPEC, set SPECGEN_SPEC, or add \"spec\" to specgen.json"
        )
    try:
        return GenerateOptions.model_validate(merged)
    except ValueError as exc:
        raise ConfigError(f"Invalid options: {exc}") from exc
