"""Look up internal ``$ref`` JSON Reference pointers in an OpenAPI document.

Unlike a full resolver, nothing here copies or rewrites the document: the
generator needs to keep ``{"$ref": "#/components/schemas/Pet"}`` intact so
that it can emit a named type, and plugins edit the live dictionaries.
These helpers only *follow* a pointer when the generator needs the target
(parameters, request bodies, responses).

Only internal references (``#/...``) are supported; anything else raises
:class:`~specgen.exceptions.SpecParseError`.
"""

from __future__ import annotations

from typing import Any

from specgen.exceptions import SpecParseError

SCHEMA_REF_PREFIX = "#/components/schemas/"


def resolve_ref(ref: str, document: dict[str, Any]) -> Any:
    """Return the value *ref* points to inside *document*.

    Handles RFC 6901 escaping (``~1`` for ``/``, ``~0`` for ``~``).

    Raises:
        SpecParseError: If *ref* is external or any segment is missing.
    """
    if not ref.startswith("#/"):
        raise SpecParseError(
            f"External $ref not supported: {ref}. "
            "Only internal references (#/...) are handled."
        )

    current: Any = document
    for segment in ref[2:].split("/"):
        segment = segment.replace("~1", "/").replace("~0", "~")
        if isinstance(current, dict):
            if segment not in current:
                raise SpecParseError(
                    f"Cannot resolve $ref '{ref}': key '{segment}' not found at path"
                )
            current = current[segment]
        elif isinstance(current, list):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError) as exc:
                raise SpecParseError(
                    f"Cannot resolve $ref '{ref}': invalid array index '{segment}'"
                ) from exc
        else:
            raise SpecParseError(
                f"Cannot resolve $ref '{ref}': cannot navigate into {type(current).__name__}"
            )
    return current


def deref(obj: Any, document: dict[str, Any]) -> Any:
    """Follow ``$ref`` chains starting at *obj* until a non-reference is reached.

    Non-reference values are returned unchanged.

    Raises:
        SpecParseError: On a circular chain or an unresolvable reference.
    """
    seen: set[str] = set()
    while isinstance(obj, dict) and "$ref" in obj:
        ref = obj["$ref"]
        if ref in seen:
            raise SpecParseError(f"Circular $ref chain at '{ref}'")
        seen.add(ref)
        obj = resolve_ref(ref, document)
    return obj


def ref_name(ref: str) -> str | None:
    """Return the component name for a ``#/components/schemas/<name>`` ref, else ``None``."""
    if not ref.startswith(SCHEMA_REF_PREFIX):
        return None
    return ref[len(SCHEMA_REF_PREFIX):].replace("~1", "/").replace("~0", "~")
