"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~specgen.exceptions.SpecgenError` subclass. CI
scripts wrapping ``specgen generate`` can branch on the exit code without
parsing stderr.

Example::

    $ specgen generate openapi.json -o client.py -P broken.plugin:plugin
    $ echo $?
    10  # EXIT_PLUGIN_ERROR -- a plugin callback raised
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_SPEC_PARSE_ERROR = 7
"""The OpenAPI document could not be loaded, parsed, or validated."""

EXIT_GENERATION_ERROR = 8
"""The document was loaded but could not be turned into source code."""

EXIT_PLUGIN_ERROR = 10
"""A plugin failed to load, was rejected, or raised inside a callback."""
