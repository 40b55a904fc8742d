"""Tests for the CLI entry point."""

import subprocess
from unittest.mock import MagicMock, patch

from click.testing import CliRunner

from gerlens_cli.cli import main
from gerlens_core.errors import GerritApiError, ResponseParseError, SubmissionError, ToolNotFoundError
from gerlens_core.models import ChangeSnapshot, CommentDraft, LineContext
from gerlens_core.reconcile import ReconcileResult


def _make_config(host="https://gerrit.example.com", username="alice", password="secret"):
    return {
        "host": host,
        "username": username,
        "password": password,
        "ai_tool": None,
        "prompt": None,
        "context_lines": 2,
    }


def _patch_common(mocker, config=None):
    """Patch load_config and build_client for most tests."""
    cfg = config or _make_config()
    mocker.patch("gerlens_core.config.load_config", return_value=cfg)
    client = MagicMock()
    mocker.patch("gerlens_cli.client.build_client", return_value=client)
    return cfg, client


class TestCLIValidation:
    def test_missing_credentials(self, mocker):
        mocker.patch("gerlens_core.config.load_config", return_value=_make_config(host=None))

        result = CliRunner().invoke(main, ["review", "123"])
        assert result.exit_code != 0
        assert "GERRIT_HOST" in result.output

    def test_missing_password_without_credential_helper(self, mocker):
        mocker.patch("gerlens_core.config.load_config", return_value=_make_config(password=None))
        mocker.patch("gerlens_cli.auth._git_credential_fill", return_value=(None, None))

        result = CliRunner().invoke(main, ["comment", "123", "-m", "hi"])
        assert result.exit_code != 0
        assert "credentials" in result.output.lower()

    def test_unknown_tool_rejected(self, mocker):
        _patch_common(mocker)
        result = CliRunner().invoke(main, ["review", "123", "--tool", "copilot"])
        assert result.exit_code != 0


class TestReviewCommand:
    def test_calls_run_review_with_options(self, mocker):
        _, client = _patch_common(mocker)
        mock_run = mocker.patch("gerlens_cli.commands.review.run_review")

        result = CliRunner().invoke(main, ["review", "123", "--comment", "--yes", "--prompt", "team.md"])

        assert result.exit_code == 0, result.output
        change_id, config, passed_client, options = mock_run.call_args.args
        assert change_id == "123"
        assert passed_client is client
        assert options.comment is True
        assert options.auto_confirm is True
        assert options.dry_run is False
        assert options.prompt_path == "team.md"

    def test_tool_flag_overrides_config(self, mocker):
        _patch_common(mocker)
        mock_run = mocker.patch("gerlens_cli.commands.review.run_review")

        CliRunner().invoke(main, ["review", "123", "--tool", "gemini"])

        assert mock_run.call_args.args[1]["ai_tool"] == "gemini"

    def test_debug_flag_passed_through(self, mocker):
        _patch_common(mocker)
        mock_run = mocker.patch("gerlens_cli.commands.review.run_review")

        CliRunner().invoke(main, ["--debug", "review", "123", "--dry-run"])

        options = mock_run.call_args.args[3]
        assert options.debug is True
        assert options.dry_run is True

    def test_tool_not_found_exits_nonzero(self, mocker):
        _patch_common(mocker)
        mocker.patch(
            "gerlens_cli.commands.review.run_review",
            side_effect=ToolNotFoundError("No AI tool found. Please install one of: claude, llm."),
        )

        result = CliRunner().invoke(main, ["review", "123"])

        assert result.exit_code == 1
        assert "No AI tool found" in result.output

    def test_parse_failure_exits_nonzero(self, mocker):
        _patch_common(mocker)
        mocker.patch(
            "gerlens_cli.commands.review.run_review",
            side_effect=ResponseParseError("No <response> tag found in AI output", raw_output="garbage"),
        )

        result = CliRunner().invoke(main, ["review", "123"])

        assert result.exit_code == 1
        assert "No <response> tag" in result.output

    def test_submission_failure_reports_summary(self, mocker):
        _patch_common(mocker)
        mocker.patch(
            "gerlens_cli.commands.review.run_review",
            side_effect=SubmissionError("Failed to post inline comments: Forbidden", summary="2 comment(s) across 1 file(s)"),
        )

        result = CliRunner().invoke(main, ["review", "123"])

        assert result.exit_code == 1
        assert "Failed to post inline comments" in result.output

    def test_unknown_configured_tool_is_usage_error(self, mocker):
        _patch_common(mocker, config={**_make_config(), "ai_tool": "copilot"})
        mock_run = mocker.patch("gerlens_cli.commands.review.run_review")

        result = CliRunner().invoke(main, ["review", "123"])

        assert result.exit_code == 2
        assert "Unknown ai_tool" in result.output
        mock_run.assert_not_called()

    def test_unexpected_value_error_is_not_a_usage_error(self, mocker):
        _patch_common(mocker)
        mocker.patch("gerlens_cli.commands.review.run_review", side_effect=ValueError("boom"))

        result = CliRunner().invoke(main, ["review", "123"])

        assert result.exit_code == 1
        assert isinstance(result.exception, ValueError)


class TestCommentCommand:
    def test_posts_message_from_flag(self, mocker):
        _, client = _patch_common(mocker)
        post = mocker.patch("gerlens_cli.commands.comment.post_comment_input", return_value=None)

        result = CliRunner().invoke(main, ["comment", "123", "-m", "Ship it"])

        assert result.exit_code == 0, result.output
        post.assert_called_once_with(client, "123", "Ship it", batch=False)
        assert "Comment posted" in result.output

    def test_reads_message_from_stdin(self, mocker):
        _patch_common(mocker)
        post = mocker.patch("gerlens_cli.commands.comment.post_comment_input", return_value=None)

        CliRunner().invoke(main, ["comment", "123"], input="From stdin\n")

        assert post.call_args.args[2] == "From stdin\n"

    def test_empty_message_rejected(self, mocker):
        _patch_common(mocker)
        post = mocker.patch("gerlens_cli.commands.comment.post_comment_input")

        result = CliRunner().invoke(main, ["comment", "123"], input="   \n")

        assert result.exit_code == 2
        post.assert_not_called()

    def test_batch_with_message_rejected(self, mocker):
        _patch_common(mocker)
        result = CliRunner().invoke(main, ["comment", "123", "--batch", "-m", "x"])
        assert result.exit_code == 2

    def test_batch_reports_results(self, mocker):
        _patch_common(mocker)
        outcome = ReconcileResult(
            comments=[CommentDraft(file="src/Main.java", line=1, message="m")],
            dropped=1,
            substitutions=[("Main.java", "src/Main.java")],
        )
        post = mocker.patch("gerlens_cli.commands.comment.post_comment_input", return_value=outcome)

        result = CliRunner().invoke(
            main, ["comment", "123", "--batch"], input='[{"file": "Main.java", "line": 1, "message": "m"}]'
        )

        assert result.exit_code == 0, result.output
        assert post.call_args.kwargs["batch"] is True
        assert "src/Main.java" in result.output
        assert "Dropped 1" in result.output
        assert "Posted 1 inline comment(s)" in result.output

    def test_batch_parse_error_exits_nonzero(self, mocker):
        _patch_common(mocker)
        mocker.patch(
            "gerlens_cli.commands.comment.post_comment_input",
            side_effect=ResponseParseError("Invalid inline comments JSON", raw_output="{"),
        )

        result = CliRunner().invoke(main, ["comment", "123", "--batch"], input="{")

        assert result.exit_code == 1
        assert "Invalid inline comments JSON" in result.output


class TestCommentsCommand:
    def test_lists_comments_with_context(self, mocker):
        _, client = _patch_common(mocker)
        client.get_comments.return_value = {
            "src/app.py": [
                {"id": "c1", "line": 2, "message": "Why mutate here?", "author": {"name": "Bob"},
                 "updated": "2024-01-15 10:00:00.000000000", "unresolved": True},
            ],
        }
        gather = mocker.patch(
            "gerlens_cli.commands.comments.gather_comment_contexts",
            return_value=[LineContext(before=["a = 1"], target="a += 1", after=["return a"])],
        )

        result = CliRunner().invoke(main, ["comments", "123", "--context", "1"])

        assert result.exit_code == 0, result.output
        assert gather.call_args.args[3] == 1
        assert "src/app.py" in result.output
        assert "[UNRESOLVED]" in result.output
        assert "> a += 1" in result.output
        assert "Why mutate here?" in result.output

    def test_context_defaults_to_config(self, mocker):
        cfg = {**_make_config(), "context_lines": 4}
        _, client = _patch_common(mocker, config=cfg)
        client.get_comments.return_value = {}
        gather = mocker.patch("gerlens_cli.commands.comments.gather_comment_contexts", return_value=[])

        result = CliRunner().invoke(main, ["comments", "123"])

        assert gather.call_args.args[3] == 4
        assert "No comments found" in result.output

    def test_comments_sorted_by_path_then_line(self):
        from gerlens_cli.commands.comments import fetch_comments

        client = MagicMock()
        client.get_comments.return_value = {
            "b.py": [{"id": "3", "line": 1, "message": "x"}],
            "a.py": [{"id": "2", "line": 9, "message": "y"}, {"id": "1", "line": 2, "message": "z"}],
        }
        assert [c.id for c in fetch_comments(client, "123")] == ["1", "2", "3"]


# ---------------------------------------------------------------------------
# auth.py
# ---------------------------------------------------------------------------


class TestStatusCommand:
    def test_connected(self, mocker):
        _, client = _patch_common(mocker)
        client.host = "https://gerrit.example.com"
        client.test_connection.return_value = True

        result = CliRunner().invoke(main, ["status"])

        assert result.exit_code == 0
        assert "Connected to https://gerrit.example.com" in result.output

    def test_connection_failure_exits_nonzero(self, mocker):
        _, client = _patch_common(mocker)
        client.host = "https://gerrit.example.com"
        client.test_connection.return_value = False

        result = CliRunner().invoke(main, ["status"])

        assert result.exit_code == 1
        assert "Failed to connect" in result.output

    def test_xml_output(self, mocker):
        _, client = _patch_common(mocker)
        client.test_connection.return_value = True

        result = CliRunner().invoke(main, ["status", "--xml"])

        assert result.exit_code == 0
        assert "<connected>true</connected>" in result.output


class TestShowCommand:
    SNAPSHOT = ChangeSnapshot(
        change_id="I0123abcd",
        number=42,
        subject="Fix the parser",
        status="NEW",
        project="acme",
        branch="main",
        diff="diff --git a/x b/x\n+[added]\n",
    )

    def test_narrative_output(self, mocker):
        _patch_common(mocker)
        mocker.patch("gerlens_cli.commands.show.build_snapshot", return_value=self.SNAPSHOT)

        result = CliRunner().invoke(main, ["show", "42"])

        assert result.exit_code == 0
        assert "Change 42: Fix the parser" in result.output
        assert "+[added]" in result.output

    def test_xml_output(self, mocker):
        _patch_common(mocker)
        mocker.patch("gerlens_cli.commands.show.build_snapshot", return_value=self.SNAPSHOT)

        result = CliRunner().invoke(main, ["show", "42", "--xml"])

        assert result.exit_code == 0
        assert "<show_result>" in result.output
        assert "<number>42</number>" in result.output

    def test_fetch_failure(self, mocker):
        _patch_common(mocker)
        mocker.patch("gerlens_cli.commands.show.build_snapshot", side_effect=GerritApiError("404 Not Found"))

        result = CliRunner().invoke(main, ["show", "42"])

        assert result.exit_code == 1
        assert "Failed to fetch change 42" in result.output


class TestDiffCommand:
    def test_prints_diff(self, mocker):
        _, client = _patch_common(mocker)
        client.get_diff.return_value = "diff --git a/x b/x\n-old [line]\n+new line\n"

        result = CliRunner().invoke(main, ["diff", "42"])

        assert result.exit_code == 0
        assert "-old [line]" in result.output
        assert "+new line" in result.output

    def test_files_only_skips_commit_message(self, mocker):
        _, client = _patch_common(mocker)
        client.get_files.return_value = {"/COMMIT_MSG": {}, "src/a.py": {}}

        result = CliRunner().invoke(main, ["diff", "42", "--files-only"])

        assert result.exit_code == 0
        assert "src/a.py" in result.output
        assert "COMMIT_MSG" not in result.output
        client.get_diff.assert_not_called()

    def test_xml_output(self, mocker):
        _, client = _patch_common(mocker)
        client.get_diff.return_value = "+added\n"

        result = CliRunner().invoke(main, ["diff", "42", "--xml"])

        assert result.exit_code == 0
        assert "<change_id>42</change_id>" in result.output
        assert "<content><![CDATA[+added\n]]></content>" in result.output

    def test_empty_diff(self, mocker):
        _, client = _patch_common(mocker)
        client.get_diff.return_value = ""

        result = CliRunner().invoke(main, ["diff", "42"])

        assert "No diff content available" in result.output

    def test_fetch_failure(self, mocker):
        _, client = _patch_common(mocker)
        client.get_diff.side_effect = GerritApiError("boom")

        result = CliRunner().invoke(main, ["diff", "42"])

        assert result.exit_code == 1
        assert "Failed to get diff" in result.output


class TestResolveCredentials:
    def test_returns_credentials_from_config(self):
        from gerlens_cli.auth import resolve_credentials

        creds = resolve_credentials(_make_config(host="https://gerrit.example.com/"))
        assert creds.host == "https://gerrit.example.com"
        assert creds.username == "alice"
        assert creds.password == "secret"

    def test_returns_none_without_host(self):
        from gerlens_cli.auth import resolve_credentials

        assert resolve_credentials(_make_config(host=None)) is None

    def test_falls_back_to_git_credential_helper(self):
        from gerlens_cli.auth import resolve_credentials

        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0, stdout="protocol=https\nusername=alice\npassword=fromgit\n")
            creds = resolve_credentials(_make_config(password=None))
        assert creds.password == "fromgit"
        assert "host=gerrit.example.com" in mock_run.call_args.kwargs["input"]

    def test_helper_supplies_username_too(self):
        from gerlens_cli.auth import resolve_credentials

        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0, stdout="username=bob\npassword=pw\n")
            creds = resolve_credentials(_make_config(username=None, password=None))
        assert creds.username == "bob"

    def test_returns_none_when_git_not_installed(self):
        from gerlens_cli.auth import resolve_credentials

        with patch("subprocess.run", side_effect=FileNotFoundError):
            assert resolve_credentials(_make_config(password=None)) is None

    def test_returns_none_when_helper_times_out(self):
        from gerlens_cli.auth import resolve_credentials

        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="git", timeout=5)):
            assert resolve_credentials(_make_config(password=None)) is None

    def test_returns_none_when_helper_fails(self):
        from gerlens_cli.auth import resolve_credentials

        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=128, stdout="")
            assert resolve_credentials(_make_config(password=None)) is None
