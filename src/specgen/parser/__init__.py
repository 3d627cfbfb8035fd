"""OpenAPI document loading and ``$ref`` lookup.

The generator works on the raw document dictionary rather than on a
validated model, because plugins are allowed to rewrite any part of it
while a run is in progress.

Typical usage::

    from specgen.parser import load_spec, validate_openapi_version

    document = load_spec("openapi.yaml")
    validate_openapi_version(document)

Sub-modules:

* :mod:`~specgen.parser.loader` -- URL, file, and stdin loading with JSON/YAML
  detection and OpenAPI version validation.
* :mod:`~specgen.parser.resolver` -- JSON Pointer lookup for internal
  ``$ref`` values.
"""

from specgen.parser.loader import load_spec, validate_openapi_version
from specgen.parser.resolver import deref, ref_name, resolve_ref

__all__ = ["load_spec", "validate_openapi_version", "deref", "ref_name", "resolve_ref"]
