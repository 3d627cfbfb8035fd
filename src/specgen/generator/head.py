"""Build the head of the generated module.

The head is parsed from :data:`HEAD_TEMPLATE` and then filled in from the
document: ``defaults`` gets the base URL, ``servers`` gets one entry per
OpenAPI Server Object. Both are plain ``ast.Assign`` nodes that are handed
to the ``modify_defaults`` and ``modify_servers`` checkpoints, where plugins
may rewrite their values in place.

The generated code targets Python 3.11+ (``typing.Required``) and depends
on ``httpx`` at runtime.
"""

from __future__ import annotations

import ast
import re
from typing import Any, Optional

from specgen.exceptions import GenerationError
from specgen.generator.naming import snake_case

HEAD_TEMPLATE = '''\
from __future__ import annotations

from typing import Any, Literal, Optional, Required, TypedDict, Union
from urllib.parse import quote

import httpx

defaults = {}

servers = {}


def _request(
    method: str,
    path: str,
    *,
    path_params: Optional[dict[str, Any]] = None,
    query: Optional[dict[str, Any]] = None,
    headers: Optional[dict[str, Any]] = None,
    json: Any = None,
    data: Any = None,
    files: Any = None,
    content: Any = None,
) -> Any:
    for key, value in (path_params or {}).items():
        path = path.replace("{" + key + "}", quote(str(value), safe=""))
    params = {k: v for k, v in (query or {}).items() if v is not None}
    merged_headers = dict(defaults.get("headers", {}))
    merged_headers.update({k: str(v) for k, v in (headers or {}).items() if v is not None})
    with httpx.Client(
        base_url=defaults["base_url"], timeout=defaults.get("timeout", 30.0)
    ) as client:
        response = client.request(
            method,
            path,
            params=params,
            headers=merged_headers,
            json=json,
            data=data,
            files=files,
            content=content,
        )
    response.raise_for_status()
    if not response.content:
        return None
    if "json" in response.headers.get("content-type", ""):
        return response.json()
    return response.text
'''

_SERVER_VARIABLE_RE = re.compile(r"\{([^}]+)\}")


def literal(value: Any) -> ast.expr:
    """Return an expression node evaluating to the plain Python *value*."""
    return ast.parse(repr(value), mode="eval").body


def server_url(server: dict[str, Any]) -> str:
    """Return a Server Object's URL with its variables set to their defaults."""
    variables = server.get("variables") or {}

    def _substitute(match: re.Match[str]) -> str:
        variable = variables.get(match.group(1)) or {}
        return str(variable.get("default", match.group(0)))

    return _SERVER_VARIABLE_RE.sub(_substitute, str(server.get("url", "")))


def server_entries(document: dict[str, Any]) -> dict[str, str]:
    """Map a Python-friendly key to each server URL, in document order.

    Keys come from the server description (``"Production API"`` becomes
    ``production_api``) or default to ``server1``, ``server2``, ...
    """
    entries: dict[str, str] = {}
    for index, server in enumerate(document.get("servers") or [], start=1):
        if not isinstance(server, dict):
            continue
        key = f"server{index}"
        if server.get("description"):
            key = snake_case(server["description"], fallback=key)
        while key in entries:
            key = f"{key}_{index}"
        entries[key] = server_url(server)
    return entries


def find_assignment(tree: ast.Module, target: str) -> Optional[ast.Assign]:
    """Return the top-level ``target = ...`` statement in *tree*, if any."""
    for node in tree.body:
        if isinstance(node, ast.Assign) and any(
            isinstance(t, ast.Name) and t.id == target for t in node.targets
        ):
            return node
    return None


def build_head(
    document: dict[str, Any], base_url: Optional[str] = None
) -> tuple[ast.Module, ast.Assign, ast.Assign]:
    """Parse the head template and fill in ``defaults`` and ``servers``.

    Args:
        document: The OpenAPI document.
        base_url: Explicit base URL; defaults to the first server's URL.

    Returns:
        ``(tree, defaults, servers)`` where the last two are nodes inside
        ``tree``.
    """
    tree = ast.parse(HEAD_TEMPLATE)
    defaults = find_assignment(tree, "defaults")
    servers = find_assignment(tree, "servers")
    if defaults is None or servers is None:
        raise GenerationError("Head template is missing `defaults` or `servers`")

    entries = server_entries(document)
    if base_url is None:
        base_url = next(iter(entries.values()), "")

    defaults.value = literal({"base_url": base_url, "headers": {}, "timeout": 30.0})
    servers.value = literal(entries)
    return tree, defaults, servers
