"""Shared test fixtures for specgen.

Provides reusable fixtures for loading the petstore document, building
options, isolating config and environment, and resetting the global output
and logging state that the CLI installs.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pytest

from specgen.models import GenerateOptions
from specgen.output import reset_output


FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager and the ``specgen`` logger after every test.

    The CLI callback installs a Rich handler bound to the streams that were
    current at the time, and sets the logger level from ``--quiet`` or
    ``--verbose``. Both would leak into later tests.
    """
    yield
    reset_output()
    logger = logging.getLogger("specgen")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Document fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore_raw() -> dict[str, Any]:
    """Load the raw petstore 3.0 document (a fresh copy per test)."""
    with open(FIXTURES_DIR / "petstore.json") as f:
        return json.load(f)


@pytest.fixture
def petstore_path(tmp_path: Path) -> Path:
    """Copy the petstore document into tmp_path and return its path."""
    path = tmp_path / "petstore.json"
    path.write_text((FIXTURES_DIR / "petstore.json").read_text())
    return path


# ---------------------------------------------------------------------------
# Options and environment
# ---------------------------------------------------------------------------


@pytest.fixture
def options(tmp_path: Path) -> GenerateOptions:
    """Options writing to a file under tmp_path."""
    return GenerateOptions(spec="petstore.json", output=str(tmp_path / "client.py"))


@pytest.fixture
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run in an empty tmp_path with no SPECGEN_* variables and a private data dir."""
    for var in ("SPECGEN_SPEC", "SPECGEN_OUTPUT", "SPECGEN_BASE_URL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
