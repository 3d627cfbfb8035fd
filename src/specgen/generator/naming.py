"""Turn OpenAPI names into valid Python identifiers.

* :func:`snake_case` -- parameters, functions, and server keys
  (``petId`` becomes ``pet_id``, ``X-Request-ID`` becomes ``x_request_id``).
* :func:`type_name` -- component schema names
  (``pet-owner`` becomes ``PetOwner``, ``2xxError`` becomes ``_2xxError``).
* :func:`function_name` -- the generated function for an operation, from its
  ``operationId`` or, failing that, its method and path.
"""

from __future__ import annotations

import keyword
import re

_INVALID_IDENT_RE = re.compile(r"[^a-zA-Z0-9_]")
_WORD_SPLIT_RE = re.compile(r"[^a-zA-Z0-9]+")


def snake_case(name: str, fallback: str = "param") -> str:
    """Convert *name* to a lowercase snake_case identifier.

    CamelCase boundaries become underscores, separators and invalid
    characters collapse into single underscores, a leading digit gets an
    underscore prefix, and keywords get a trailing underscore.

    Example::

        >>> snake_case("petId")
        'pet_id'
        >>> snake_case("class")
        'class_'
    """
    result = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name)
    result = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", result)
    result = _INVALID_IDENT_RE.sub("_", result.lower())
    result = re.sub(r"_+", "_", result).strip("_")
    if not result:
        result = fallback
    if result[0].isdigit():
        result = f"_{result}"
    if keyword.iskeyword(result):
        result = f"{result}_"
    return result


def type_name(name: str) -> str:
    """Convert a component schema name to a PascalCase identifier.

    Names that already look like identifiers keep their casing
    (``PetDTO`` stays ``PetDTO``).
    """
    if name.isidentifier() and not keyword.iskeyword(name):
        result = name[0].upper() + name[1:]
    else:
        words = [word for word in _WORD_SPLIT_RE.split(name) if word]
        result = "".join(word[0].upper() + word[1:] for word in words) or "Schema"
    if result[0].isdigit():
        result = f"_{result}"
    return result


def function_name(operation_id: str | None, method: str, path: str) -> str:
    """Return the generated function name for an operation.

    Example::

        >>> function_name("getPetById", "get", "/pets/{petId}")
        'get_pet_by_id'
        >>> function_name(None, "get", "/pets/{petId}")
        'get_pets_pet_id'
    """
    if operation_id:
        return snake_case(operation_id, fallback=method)
    segments = [seg.strip("{}") for seg in path.split("/") if seg]
    return snake_case("_".join([method, *segments]), fallback=method)
