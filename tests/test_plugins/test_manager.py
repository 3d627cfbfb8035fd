"""Tests for PluginManager loading, option merging, and validation."""

from __future__ import annotations

import logging
from pathlib import Path

import click
import pytest

from specgen.exceptions import InvalidUsageError, PluginError
from specgen.models import GenerateOptions
from specgen.plugins import CodegenPlugin, PluginManager, PluginOptions, define_plugin


def _plugin(name: str, *args: dict, validator=None, **hooks) -> CodegenPlugin:  # noqa: ANN001
    options = PluginOptions(args=list(args), description=f"{name} options", validator=validator)
    return define_plugin(CodegenPlugin(name=name, options=options if args or validator else None, **hooks))


@pytest.fixture
def manager() -> PluginManager:
    return PluginManager()


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class TestLoadPlugin:
    """Only genuine, uniquely named plugins are accepted."""

    def test_load_genuine(self, manager: PluginManager) -> None:
        plugin = _plugin("rename")
        manager.load_plugin(plugin)
        assert manager.get_plugin("rename") is plugin

    def test_rejects_unregistered(self, manager: PluginManager) -> None:
        with pytest.raises(PluginError, match="define_plugin"):
            manager.load_plugin(CodegenPlugin(name="raw"))
        assert manager.list_plugins() == []

    def test_rejects_nameless(self, manager: PluginManager) -> None:
        with pytest.raises(PluginError):
            manager.load_plugin(define_plugin(CodegenPlugin(name="")))

    def test_rejects_plain_dict(self, manager: PluginManager) -> None:
        with pytest.raises(PluginError):
            manager.load_plugin({"name": "dict"})

    def test_rejects_duplicate_name(self, manager: PluginManager) -> None:
        manager.load_plugin(_plugin("dup"))
        with pytest.raises(PluginError, match="already loaded"):
            manager.load_plugin(_plugin("dup"))

    def test_get_unknown(self, manager: PluginManager) -> None:
        with pytest.raises(PluginError, match="not loaded"):
            manager.get_plugin("missing")

    def test_load_plugins_skips_refused(
        self, manager: PluginManager, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="specgen"):
            loaded = manager.load_plugins(
                [_plugin("a"), CodegenPlugin(name="raw"), _plugin("a"), _plugin("b")]
            )
        assert loaded == ["a", "b"]
        assert len([r for r in caplog.records if "Skipping plugin" in r.getMessage()]) == 2

    def test_list_plugins(self, manager: PluginManager) -> None:
        manager.load_plugin(_plugin("docs"))
        manager.load_plugin(_plugin("rename", {"name": "rename-style"}))
        assert manager.list_plugins() == [
            {"name": "docs", "enabled": True, "options": [], "description": ""},
            {
                "name": "rename",
                "enabled": True,
                "options": ["rename-style"],
                "description": "rename options",
            },
        ]


class TestLoadFromPath:
    """Import-path loading."""

    @pytest.fixture
    def plugin_module(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
        (tmp_path / "specgen_test_pathplugin.py").write_text(
            "from specgen.plugins import CodegenPlugin, define_plugin\n"
            "plugin = define_plugin(CodegenPlugin(name='by-path'))\n"
            "other = define_plugin(CodegenPlugin(name='by-attribute'))\n"
            "raw = CodegenPlugin(name='raw')\n"
        )
        monkeypatch.syspath_prepend(str(tmp_path))
        return "specgen_test_pathplugin"

    def test_default_attribute(self, manager: PluginManager, plugin_module: str) -> None:
        assert manager.load_from_path(plugin_module).name == "by-path"

    def test_named_attribute(self, manager: PluginManager, plugin_module: str) -> None:
        assert manager.load_from_path(f"{plugin_module}:other").name == "by-attribute"

    def test_missing_module(self, manager: PluginManager) -> None:
        with pytest.raises(PluginError, match="Cannot import"):
            manager.load_from_path("no_such_specgen_module:plugin")

    def test_missing_attribute(self, manager: PluginManager, plugin_module: str) -> None:
        with pytest.raises(PluginError, match="has no attribute 'nope'"):
            manager.load_from_path(f"{plugin_module}:nope")

    def test_unregistered_attribute(self, manager: PluginManager, plugin_module: str) -> None:
        with pytest.raises(PluginError, match="not a registered plugin"):
            manager.load_from_path(f"{plugin_module}:raw")

    def test_load_paths_skips_failures(
        self, manager: PluginManager, plugin_module: str, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="specgen"):
            loaded = manager.load_paths(
                [f"{plugin_module}:raw", plugin_module, "no_such_specgen_module"]
            )
        assert loaded == ["by-path"]
        assert len(caplog.records) == 2


# ---------------------------------------------------------------------------
# Option collisions
# ---------------------------------------------------------------------------


class TestOptionCollisions:
    """Flags must be unique across built-ins and every loaded plugin."""

    @pytest.mark.parametrize(
        "arg",
        [
            {"name": "output"},
            {"name": "base-url"},
            {"name": "include-tag"},
            {"name": "custom", "aliases": ["o"]},
            {"name": "custom", "aliases": ["P"]},
            {"name": "custom", "aliases": ["help"]},
        ],
    )
    def test_builtin_collision(self, manager: PluginManager, arg: dict) -> None:
        with pytest.raises(PluginError, match="built-in"):
            manager.load_plugin(_plugin("clash", arg))

    def test_builtin_setting_collision(self, manager: PluginManager) -> None:
        # --include-tags is not a flag, but would overwrite GenerateOptions.include_tags.
        with pytest.raises(PluginError, match="shadows the built-in 'include_tags'"):
            manager.load_plugin(_plugin("clash", {"name": "include-tags"}))

    def test_collision_between_plugins(self, manager: PluginManager) -> None:
        manager.load_plugin(_plugin("first", {"name": "style", "aliases": ["s"]}))
        with pytest.raises(PluginError, match="declared by plugin 'first'"):
            manager.load_plugin(_plugin("second", {"name": "other", "aliases": ["s"]}))

        assert [p["name"] for p in manager.list_plugins()] == ["first"]
        assert [spec.name for _, spec in manager.option_specs()] == ["style"]

    def test_collision_within_plugin(self, manager: PluginManager) -> None:
        with pytest.raises(PluginError, match="already declared"):
            manager.load_plugin(_plugin("self", {"name": "style"}, {"name": "other", "aliases": ["style"]}))

    def test_refused_plugin_claims_nothing(self, manager: PluginManager) -> None:
        with pytest.raises(PluginError):
            manager.load_plugin(_plugin("bad", {"name": "mode"}, {"name": "output"}))
        manager.load_plugin(_plugin("good", {"name": "mode"}))
        assert manager.get_plugin("good").name == "good"

    def test_shared_destination_between_plugins(self, manager: PluginManager) -> None:
        manager.load_plugin(_plugin("a", {"name": "foo-bar", "default": "A"}))
        with pytest.raises(PluginError, match="under 'foo_bar', already used by plugin 'a'"):
            manager.load_plugin(_plugin("b", {"name": "foo_bar", "default": "B"}))

        assert [p["name"] for p in manager.list_plugins()] == ["a"]
        assert manager.default_plugin_values() == {"foo_bar": "A"}
        assert manager.parse_plugin_args(["--foo-bar=x"]) == {"foo_bar": "x"}

    def test_shared_destination_within_plugin(self, manager: PluginManager) -> None:
        with pytest.raises(PluginError, match="already used by plugin 'self'"):
            manager.load_plugin(_plugin("self", {"name": "max-depth"}, {"name": "max_depth"}))

    def test_refused_destination_claims_nothing(self, manager: PluginManager) -> None:
        with pytest.raises(PluginError):
            manager.load_plugin(_plugin("bad", {"name": "mode"}, {"name": "output"}))
        manager.load_plugin(_plugin("good", {"name": "other", "aliases": ["m"]}, {"name": "mode"}))
        assert manager.default_plugin_values() == {"other": None, "mode": None}

    @pytest.mark.parametrize("name", ["json", "schema", "copy", "dict", "model-dump", "plugin-values"])
    def test_options_model_attribute_is_reserved(self, manager: PluginManager, name: str) -> None:
        with pytest.raises(PluginError, match="shadows the built-in"):
            manager.load_plugin(_plugin("clash", {"name": name}))
        assert manager.list_plugins() == []

    def test_distinct_options_merge(self, manager: PluginManager) -> None:
        manager.load_plugin(_plugin("a", {"name": "alpha", "default": "x"}))
        manager.load_plugin(_plugin("b", {"name": "beta", "type": "integer", "default": 3}))
        params = manager.build_option_params()
        assert all(isinstance(param, click.Option) for param in params)
        assert [param.name for param in params] == ["alpha", "beta"]
        assert manager.default_plugin_values() == {"alpha": "x", "beta": 3}


# ---------------------------------------------------------------------------
# Parsing plugin flags
# ---------------------------------------------------------------------------


class TestParsePluginArgs:
    """Leftover CLI tokens are parsed against the merged plugin options."""

    @pytest.fixture
    def loaded(self, manager: PluginManager) -> PluginManager:
        manager.load_plugin(
            _plugin(
                "rename",
                {"name": "rename-style", "default": "camel", "aliases": ["r"]},
                {"name": "strict", "type": "boolean"},
                {"name": "max-depth", "type": "integer", "default": 5},
            )
        )
        return manager

    def test_no_args(self, loaded: PluginManager) -> None:
        assert loaded.parse_plugin_args([]) == {}

    def test_values_and_types(self, loaded: PluginManager) -> None:
        values = loaded.parse_plugin_args(["--rename-style=snake", "--strict", "--max-depth", "2"])
        assert values == {"rename_style": "snake", "strict": True, "max_depth": 2}

    def test_alias(self, loaded: PluginManager) -> None:
        assert loaded.parse_plugin_args(["-r", "pascal"]) == {"rename_style": "pascal"}

    def test_unknown_flag(self, loaded: PluginManager) -> None:
        with pytest.raises(InvalidUsageError, match="--nope"):
            loaded.parse_plugin_args(["--nope"])

    def test_bad_type(self, loaded: PluginManager) -> None:
        with pytest.raises(InvalidUsageError):
            loaded.parse_plugin_args(["--max-depth=deep"])

    def test_no_plugins_rejects_extra_flags(self, manager: PluginManager) -> None:
        with pytest.raises(InvalidUsageError):
            manager.parse_plugin_args(["--rename-style=snake"])


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


class TestValidateOptions:
    """A rejecting validator disables its own plugin only."""

    def test_accepting_validator(self, manager: PluginManager) -> None:
        manager.load_plugin(_plugin("ok", {"name": "mode"}, validator=lambda o: True))
        assert manager.validate_options(GenerateOptions(spec="x", mode="a")) == []
        assert [p.name for p in manager.get_hook_runner().plugins] == ["ok"]

    def test_rejecting_validator_disables_plugin(
        self, manager: PluginManager, caplog: pytest.LogCaptureFixture
    ) -> None:
        manager.load_plugin(_plugin("picky", {"name": "mode"}, validator=lambda o: o.mode == "a"))
        manager.load_plugin(_plugin("easy"))
        runner_before = manager.get_hook_runner()

        with caplog.at_level(logging.WARNING, logger="specgen"):
            disabled = manager.validate_options(GenerateOptions(spec="x", mode="b"))

        assert disabled == ["picky"]
        assert "rejected the supplied options" in caplog.text
        assert [p.name for p in manager.get_hook_runner().plugins] == ["easy"]
        assert manager.get_hook_runner() is not runner_before
        assert manager.list_plugins()[0]["enabled"] is False

    def test_validator_sees_merged_options(self, manager: PluginManager) -> None:
        seen: list[GenerateOptions] = []
        manager.load_plugin(_plugin("spy", {"name": "mode"}, validator=lambda o: seen.append(o) or True))
        options = GenerateOptions(spec="x", output="out.py", mode="z")
        manager.validate_options(options)
        assert seen == [options]

    def test_raising_validator(self, manager: PluginManager) -> None:
        def explode(options: GenerateOptions) -> bool:
            raise KeyError("mode")

        manager.load_plugin(_plugin("explode", {"name": "mode"}, validator=explode))
        with pytest.raises(PluginError, match="Plugin 'explode' option validator raised"):
            manager.validate_options(GenerateOptions(spec="x"))

    def test_runner_order_is_load_order(self, manager: PluginManager) -> None:
        for name in ("c", "a", "b"):
            manager.load_plugin(_plugin(name))
        assert [p.name for p in manager.get_hook_runner().plugins] == ["c", "a", "b"]
