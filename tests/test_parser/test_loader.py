"""Tests for specgen.parser.loader."""

from __future__ import annotations

import io
import json
import logging
import textwrap
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from specgen.exceptions import SpecParseError
from specgen.parser.loader import _parse_content, load_spec, validate_openapi_version

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


# ---------------------------------------------------------------------------
# load_spec dispatch
# ---------------------------------------------------------------------------


class TestLoadSpec:
    """Test load_spec routes to file, URL, or stdin."""

    def test_loads_from_file_json(self) -> None:
        result = load_spec(str(FIXTURES_DIR / "petstore.json"))
        assert result["openapi"] == "3.0.3"
        assert result["info"]["title"] == "Petstore API"

    def test_loads_from_file_yaml(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "spec.yaml"
        yaml_file.write_text(
            textwrap.dedent("""\
                openapi: "3.1.0"
                info:
                  title: YAML Test
                  version: "1.0.0"
                paths: {}
            """),
            encoding="utf-8",
        )
        result = load_spec(str(yaml_file))
        assert result["openapi"] == "3.1.0"
        assert result["info"]["title"] == "YAML Test"

    def test_unknown_extension_falls_back_to_yaml(self, tmp_path: Path) -> None:
        spec_file = tmp_path / "openapi.txt"
        spec_file.write_text("openapi: 3.0.0\ninfo: {title: T, version: '1'}\n")
        assert load_spec(str(spec_file))["info"]["title"] == "T"

    def test_loads_from_stdin(self) -> None:
        spec_json = json.dumps({"openapi": "3.0.3", "info": {"title": "stdin test", "version": "1.0"}})
        with patch("specgen.parser.loader.sys") as mock_sys:
            mock_sys.stdin = io.StringIO(spec_json)
            result = load_spec("-")
        assert result["info"]["title"] == "stdin test"

    def test_empty_stdin(self) -> None:
        with patch("specgen.parser.loader.sys") as mock_sys:
            mock_sys.stdin = io.StringIO("  \n\t")
            with pytest.raises(SpecParseError, match="No input received from stdin"):
                load_spec("-")

    def test_loads_from_url(self) -> None:
        spec = {"openapi": "3.0.3", "info": {"title": "URL test", "version": "1.0"}}
        mock_response = httpx.Response(
            status_code=200,
            json=spec,
            request=httpx.Request("GET", "https://example.com/spec.json"),
        )
        with patch("specgen.parser.loader.httpx.get", return_value=mock_response) as mock_get:
            result = load_spec("https://example.com/spec.json")
        assert result["info"]["title"] == "URL test"
        mock_get.assert_called_once()

    def test_url_yaml_content_type(self) -> None:
        mock_response = httpx.Response(
            status_code=200,
            text="openapi: 3.0.3\ninfo:\n  title: YAML URL\n  version: '1'\n",
            headers={"content-type": "application/yaml"},
            request=httpx.Request("GET", "https://example.com/spec"),
        )
        with patch("specgen.parser.loader.httpx.get", return_value=mock_response):
            assert load_spec("https://example.com/spec")["info"]["title"] == "YAML URL"

    def test_url_http_error(self) -> None:
        mock_response = httpx.Response(
            status_code=404,
            request=httpx.Request("GET", "https://example.com/missing.json"),
        )
        with patch("specgen.parser.loader.httpx.get", return_value=mock_response):
            with pytest.raises(SpecParseError, match="HTTP 404"):
                load_spec("https://example.com/missing.json")

    def test_url_connection_error(self) -> None:
        with patch(
            "specgen.parser.loader.httpx.get",
            side_effect=httpx.ConnectError("Connection refused"),
        ):
            with pytest.raises(SpecParseError, match="Failed to fetch"):
                load_spec("https://example.com/spec.json")


class TestFileErrors:
    """File loading failures."""

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SpecParseError, match="Spec file not found"):
            load_spec(str(tmp_path / "nope.json"))

    def test_empty_file(self, tmp_path: Path) -> None:
        empty = tmp_path / "empty.json"
        empty.write_text("   \n")
        with pytest.raises(SpecParseError, match="Spec file is empty"):
            load_spec(str(empty))

    def test_invalid_json_extension(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.json"
        bad.write_text("{not json")
        with pytest.raises(SpecParseError, match="Invalid JSON"):
            load_spec(str(bad))


# ---------------------------------------------------------------------------
# _parse_content
# ---------------------------------------------------------------------------


class TestParseContent:
    """Format detection and mapping check."""

    def test_json_without_hint(self) -> None:
        assert _parse_content('{"openapi": "3.0.0"}') == {"openapi": "3.0.0"}

    def test_yaml_without_hint(self) -> None:
        assert _parse_content("openapi: 3.0.0\n") == {"openapi": "3.0.0"}

    def test_list_is_rejected(self) -> None:
        with pytest.raises(SpecParseError, match="must be a JSON/YAML object"):
            _parse_content("[1, 2, 3]")

    def test_scalar_is_rejected(self) -> None:
        with pytest.raises(SpecParseError, match="got str"):
            _parse_content("just a string", hint="yaml")

    def test_unparseable(self) -> None:
        with pytest.raises(SpecParseError, match="Failed to parse spec as JSON or YAML"):
            _parse_content("key: [unclosed\n  - : :")


# ---------------------------------------------------------------------------
# validate_openapi_version
# ---------------------------------------------------------------------------


class TestValidateVersion:
    """Only OpenAPI 3.x is accepted."""

    @pytest.mark.parametrize("version", ["3.0.0", "3.0.3", "3.1.0"])
    def test_supported(self, version: str) -> None:
        assert validate_openapi_version({"openapi": version}) == version

    def test_swagger_rejected(self) -> None:
        with pytest.raises(SpecParseError, match="Swagger 2.0 is not supported"):
            validate_openapi_version({"swagger": "2.0"})

    def test_missing_field(self) -> None:
        with pytest.raises(SpecParseError, match="Missing 'openapi' field"):
            validate_openapi_version({"info": {}})

    def test_unsupported_major(self) -> None:
        with pytest.raises(SpecParseError, match="Unsupported OpenAPI version: 4.0.0"):
            validate_openapi_version({"openapi": "4.0.0"})

    def test_newer_minor_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="specgen"):
            assert validate_openapi_version({"openapi": "3.2.0"}) == "3.2.0"
        assert "newer than 3.1" in caplog.text
