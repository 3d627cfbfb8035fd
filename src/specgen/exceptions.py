"""Exception hierarchy for specgen.

All exceptions inherit from :class:`SpecgenError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`specgen.exit_codes`.
The top-level error handler in :func:`specgen.app.main` catches
``SpecgenError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    SpecgenError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- SpecParseError      (exit 7)
    +-- GenerationError     (exit 8)
    +-- PluginError         (exit 10)
    +-- ConfigError         (exit 1)

Note that an invalid plugin *descriptor* is deliberately not an exception:
:func:`~specgen.plugins.base.define_plugin` logs a warning and quarantines
the plugin instead.
"""

from specgen.exit_codes import (
    EXIT_GENERATION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_PLUGIN_ERROR,
    EXIT_SPEC_PARSE_ERROR,
)


class SpecgenError(Exception):
    """Base exception for all specgen errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`specgen.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(SpecgenError):
    """Raised for invalid CLI arguments, including unknown plugin flags."""

    exit_code = EXIT_INVALID_USAGE


class SpecParseError(SpecgenError):
    """Raised when the OpenAPI document cannot be loaded, parsed, or validated."""

    exit_code = EXIT_SPEC_PARSE_ERROR


class GenerationError(SpecgenError):
    """Raised when a loaded document cannot be converted into a Python module."""

    exit_code = EXIT_GENERATION_ERROR


class PluginError(SpecgenError):
    """Raised when a plugin fails to load, collides with another, or raises in a callback."""

    exit_code = EXIT_PLUGIN_ERROR


class ConfigError(SpecgenError):
    """Raised for configuration problems (unreadable ``specgen.json``, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE
