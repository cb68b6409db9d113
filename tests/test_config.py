"""Tests for kfmt.toml / pyproject.toml settings discovery."""

import pytest

from kfmt.config import load_options, locate_config_file, options_from_mapping
from kfmt.errors import ConfigError


class TestLoadOptions:
    def test_kfmt_toml(self, tmp_path):
        (tmp_path / "kfmt.toml").write_text('style = "google"\nmax_width = 120\n')
        options = load_options(tmp_path)
        assert options.block_indent == 4
        assert options.continuation_indent == 4
        assert options.max_width == 120

    def test_pyproject_section_with_dashed_key(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text(
            '[project]\nname = "demo"\n\n[tool.kfmt]\nmax-width = 80\nremove-unused-imports = false\n'
        )
        options = load_options(tmp_path)
        assert options.max_width == 80
        assert not options.remove_unused_imports
        assert options.block_indent == 2

    def test_pyproject_without_section_is_skipped(self, tmp_path):
        (tmp_path / "kfmt.toml").write_text("max_width = 90\n")
        nested = tmp_path / "module"
        nested.mkdir()
        (nested / "pyproject.toml").write_text('[project]\nname = "demo"\n')
        assert locate_config_file(nested) == (tmp_path / "kfmt.toml").resolve()
        assert load_options(nested).max_width == 90

    def test_search_starts_from_a_file_path(self, tmp_path):
        (tmp_path / "kfmt.toml").write_text('style = "dropbox"\n')
        source = tmp_path / "Main.kt"
        source.write_text("fun main() {}\n")
        assert load_options(source).block_indent == 4

    def test_explicit_file(self, tmp_path):
        config = tmp_path / "custom.toml"
        config.write_text("[tool.kfmt]\nmax_width = 60\n")
        assert load_options(tmp_path, config).max_width == 60

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigError, match="does not exist"):
            load_options(tmp_path, tmp_path / "missing.toml")

    def test_invalid_toml(self, tmp_path):
        (tmp_path / "kfmt.toml").write_text("max_width = \n")
        with pytest.raises(ConfigError, match="Invalid TOML") as excinfo:
            load_options(tmp_path)
        assert excinfo.value.path == str((tmp_path / "kfmt.toml").resolve())


class TestOptionsFromMapping:
    def test_empty_mapping_gives_defaults(self):
        options = options_from_mapping({})
        assert options.max_width == 100
        assert options.block_indent == 2

    def test_override_applies_on_top_of_style(self):
        options = options_from_mapping({"style": "google", "block_indent": 3})
        assert (options.block_indent, options.continuation_indent) == (3, 4)

    @pytest.mark.parametrize(
        "settings, message",
        [
            ({"indent": 2}, "Unknown setting 'indent'"),
            ({"style": "kotlinlang"}, "Unknown style 'kotlinlang'"),
            ({"max_width": True}, "must be of type int, got bool"),
            ({"max_width": "100"}, "must be of type int, got str"),
            ({"remove_unused_imports": 1}, "must be of type bool, got int"),
            ({"max_width": 0}, "must be positive"),
        ],
    )
    def test_invalid_settings(self, settings, message):
        with pytest.raises(ConfigError) as excinfo:
            options_from_mapping(settings, path="kfmt.toml")
        assert message in excinfo.value.message
        assert excinfo.value.code == "KFMT_CONFIG"
        assert excinfo.value.path == "kfmt.toml"
