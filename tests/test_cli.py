"""Tests for the issue-mirror command line."""

import json
import logging
import textwrap
from unittest.mock import MagicMock, patch

import pytest

from issue_mirror import cli
from issue_mirror.core.client import GitHubClient
from issue_mirror.errors import GitHubError
from issue_mirror.mirror.models import Page


@pytest.fixture
def fake_client(make_issue):
    client = MagicMock(spec=GitHubClient)
    client.list_issues.return_value = Page(items=[make_issue(7)])
    client.list_comments.return_value = Page()
    with patch("issue_mirror.cli.GitHubClient", return_value=client):
        yield client


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("issue_mirror.cli.setup_logging") as mock_setup:
        yield mock_setup


@pytest.fixture
def token(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "testtoken")


class TestMain:
    def test_text_report(self, tmp_path, token, fake_client, capsys):
        dest = tmp_path / "mirror"

        assert cli.main(["--dest", str(dest)]) == 0

        out = capsys.readouterr().out
        assert f"Mirror report for '{dest}'" in out
        assert (dest / "issues" / "007" / "7.json").is_file()
        fake_client.list_issues.assert_called_once_with(1, 100)

    def test_json_report(self, tmp_path, token, fake_client, capsys):
        assert cli.main(["--dest", str(tmp_path / "m"), "--json"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["writes"] == 1
        assert data["summary"]["issue_pages"] == 1

    def test_second_run_writes_nothing(self, tmp_path, token, fake_client, capsys):
        dest = str(tmp_path / "m")
        cli.main(["--dest", dest])
        capsys.readouterr()

        assert cli.main(["--dest", dest, "--json"]) == 0
        assert json.loads(capsys.readouterr().out)["writes"] == 0

    def test_config_error_returns_1(self, tmp_path, fake_client, quiet_logging):
        # No GITHUB_TOKEN and no token file under the isolated HOME.
        assert cli.main(["--dest", str(tmp_path / "m")]) == 1
        fake_client.list_issues.assert_not_called()
        quiet_logging.assert_called_once_with(debug=False)

    def test_missing_root_returns_1(self, token, fake_client):
        assert cli.main([]) == 1

    def test_malformed_config_file_returns_1(self, tmp_path, token, fake_client, caplog):
        project = tmp_path / ".issue_mirror" / "config.yml"
        project.parent.mkdir()
        project.write_text("mirror: [unclosed\n")

        assert cli.main(["--dest", str(tmp_path / "m")]) == 1
        assert "Configuration error" in caplog.text
        fake_client.list_issues.assert_not_called()

    def test_missing_explicit_config_file_returns_1(
        self, tmp_path, token, fake_client, monkeypatch
    ):
        monkeypatch.setenv("ISSUE_MIRROR_CONFIG", str(tmp_path / "gone.yml"))
        assert cli.main(["--dest", str(tmp_path / "m")]) == 1
        fake_client.list_issues.assert_not_called()

    def test_startup_line_names_token_user(self, tmp_path, fake_client, caplog):
        token_file = tmp_path / "tok"
        token_file.write_text("gopher:s3cret\n")
        caplog.set_level(logging.INFO, logger="issue_mirror.cli")

        cli.main(["--dest", str(tmp_path / "m"), "--token-file", str(token_file)])

        assert "Mirroring golang/go into" in caplog.text
        assert "as gopher" in caplog.text

    def test_remote_error_returns_1(self, tmp_path, token, fake_client, capsys):
        fake_client.list_issues.side_effect = GitHubError(500, "boom")

        assert cli.main(["--dest", str(tmp_path / "m")]) == 1
        assert capsys.readouterr().out == ""

    def test_logging_options_passed(self, tmp_path, token, fake_client, quiet_logging):
        log_file = str(tmp_path / "mirror.log")
        cli.main(
            [
                "--dest",
                str(tmp_path / "m"),
                "--debug",
                "--log-file",
                log_file,
                "--log-format",
                "json",
            ]
        )
        quiet_logging.assert_called_once_with(
            debug=True, log_file=log_file, log_format="json", level="INFO"
        )

    def test_yaml_config_supplies_root(self, tmp_path, token, fake_client, quiet_logging):
        project = tmp_path / ".issue_mirror" / "config.yml"
        project.parent.mkdir()
        project.write_text(
            textwrap.dedent(f"""\
            mirror:
              root: {tmp_path / "from-yaml"}
              version_backend: sidecar
            logging:
              level: WARNING
            """)
        )

        assert cli.main([]) == 0
        assert (tmp_path / "from-yaml" / "issues" / "007" / "7.json").is_file()
        assert (tmp_path / "from-yaml" / ".versions").is_dir()
        assert quiet_logging.call_args[1]["level"] == "WARNING"

    def test_version_flag(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--version"])
        assert exc_info.value.code == 0
        assert "issue-mirror version" in capsys.readouterr().out


class TestBuildEngine:
    def test_wires_config(self, mock_config, mock_github_client):
        engine = cli.build_engine(
            mock_config.__class__(
                owner="golang",
                repo="go",
                token="t",
                root=mock_config.root,
                reclean=True,
                idle_pages=3,
            ),
            client=mock_github_client,
        )
        assert engine.source is mock_github_client
        assert engine.reclean is True
        assert engine.idle_pages == 3
        assert str(engine.store.root) == mock_config.root


class TestRun:
    def test_exit_code(self):
        with patch("issue_mirror.cli.main", return_value=1):
            with pytest.raises(SystemExit) as exc_info:
                cli.run()
        assert exc_info.value.code == 1

    def test_keyboard_interrupt(self):
        with patch("issue_mirror.cli.main", side_effect=KeyboardInterrupt):
            with pytest.raises(SystemExit) as exc_info:
                cli.run()
        assert exc_info.value.code == 130
