"""Tests for issue_mirror.config_loader -- YAML config discovery and merge."""

import textwrap

import pytest
import yaml

from issue_mirror.config_loader import (
    discover_config_files,
    expand_vars,
    load_hierarchical_config,
    read_config_file,
    user_config_path,
)


def _write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(text))
    return path


@pytest.fixture
def project_file(tmp_path):
    return tmp_path / ".issue_mirror" / "config.yml"


@pytest.fixture
def user_file(isolated_env):
    return isolated_env / ".config" / "issue_mirror" / "config.yml"


class TestExpandVars:
    def test_set_variable(self, monkeypatch):
        monkeypatch.setenv("MIRROR_HOME", "/srv")
        assert expand_vars("${MIRROR_HOME}/go-issues") == "/srv/go-issues"

    def test_default_for_unset_or_empty(self, monkeypatch):
        monkeypatch.setenv("EMPTY", "")
        assert expand_vars("${UNSET_XYZ:-golang}/${EMPTY:-go}") == "golang/go"

    def test_unset_without_default_is_empty(self):
        assert expand_vars("a${UNSET_XYZ}b") == "ab"

    def test_text_without_variables_untouched(self):
        assert expand_vars("~/keys/$HOME ${") == "~/keys/$HOME ${"


class TestDiscoverConfigFiles:
    def test_nothing_found(self):
        assert discover_config_files() == []

    def test_order_most_specific_first(self, tmp_path, monkeypatch, project_file, user_file):
        explicit = _write(tmp_path / "ci.yml", "{}\n")
        _write(project_file, "{}\n")
        _write(user_file, "{}\n")
        monkeypatch.setenv("ISSUE_MIRROR_CONFIG", str(explicit))

        assert discover_config_files() == [explicit, project_file, user_file]
        assert user_config_path() == user_file

    def test_yml_wins_over_yaml(self, tmp_path, project_file):
        _write(project_file, "{}\n")
        _write(tmp_path / ".issue_mirror" / "config.yaml", "{}\n")
        assert discover_config_files() == [project_file]

    def test_yaml_extension_used_alone(self, tmp_path):
        alt = _write(tmp_path / ".issue_mirror" / "config.yaml", "{}\n")
        assert discover_config_files() == [alt]

    def test_missing_explicit_file_is_an_error(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ISSUE_MIRROR_CONFIG", str(tmp_path / "gone.yml"))
        with pytest.raises(FileNotFoundError, match="ISSUE_MIRROR_CONFIG"):
            discover_config_files()


class TestReadConfigFile:
    def test_sections_with_expanded_strings(self, project_file, monkeypatch):
        monkeypatch.setenv("MIRROR_HOME", "/srv")
        _write(
            project_file,
            """\
            github:
              repo: tools
            mirror:
              root: ${MIRROR_HOME}/tools-issues
              idle_pages: 2
            """,
        )
        assert read_config_file(project_file) == {
            "github": {"repo": "tools"},
            "mirror": {"root": "/srv/tools-issues", "idle_pages": 2},
        }

    def test_empty_file(self, project_file):
        _write(project_file, "")
        assert read_config_file(project_file) == {}

    def test_unknown_section_ignored(self, project_file, caplog):
        _write(project_file, "trac:\n  url: x\nmirror:\n  reclean: true\n")
        assert read_config_file(project_file) == {"mirror": {"reclean": True}}
        assert "ignoring unknown sections trac" in caplog.text

    def test_list_at_top_level_rejected(self, project_file):
        _write(project_file, "- golang\n- go\n")
        with pytest.raises(ValueError, match="top level"):
            read_config_file(project_file)

    def test_scalar_section_rejected(self, project_file):
        _write(project_file, "mirror: /srv/go\n")
        with pytest.raises(ValueError, match="section 'mirror'"):
            read_config_file(project_file)

    def test_invalid_yaml(self, project_file):
        _write(project_file, "mirror: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            read_config_file(project_file)


class TestLoadHierarchicalConfig:
    def test_zero_config(self):
        assert load_hierarchical_config() == {}

    def test_project_overrides_user_key_by_key(self, project_file, user_file):
        _write(
            user_file,
            """\
            github:
              owner: golang
              token_file: ~/keys/github-mirror-go-issues
            logging:
              level: DEBUG
            """,
        )
        _write(project_file, "github:\n  owner: golang-fork\n  repo: tools\n")

        assert load_hierarchical_config() == {
            "github": {
                "owner": "golang-fork",
                "repo": "tools",
                "token_file": "~/keys/github-mirror-go-issues",
            },
            "logging": {"level": "DEBUG"},
        }

    def test_explicit_file_wins(self, tmp_path, monkeypatch, project_file):
        _write(project_file, "mirror:\n  root: /srv/project\n")
        explicit = _write(tmp_path / "ci.yml", "mirror:\n  root: /srv/ci\n")
        monkeypatch.setenv("ISSUE_MIRROR_CONFIG", str(explicit))

        assert load_hierarchical_config()["mirror"]["root"] == "/srv/ci"
