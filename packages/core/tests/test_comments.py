"""Tests for comment payload construction and posting."""

import json
from unittest.mock import MagicMock

import pytest

from gerlens_core.comments import (
    build_comment_payload,
    parse_comment_json,
    post_comment_input,
    post_inline_comments,
    post_message,
    summarize_payload,
)
from gerlens_core.errors import GerritApiError, ResponseParseError, SubmissionError
from gerlens_core.models import CommentDraft, CommentRange


class TestBuildCommentPayload:
    def test_groups_by_file_preserving_order(self):
        drafts = [
            CommentDraft(file="a.py", line=9, message="first"),
            CommentDraft(file="b.py", line=1, message="other"),
            CommentDraft(file="a.py", line=2, message="second"),
        ]
        payload = build_comment_payload(drafts)
        assert list(payload) == ["a.py", "b.py"]
        assert [e["message"] for e in payload["a.py"]] == ["first", "second"]

    def test_line_entry_shape(self):
        payload = build_comment_payload([CommentDraft(file="f", line=3, message="ok")])
        assert payload == {"f": [{"line": 3, "message": "ok"}]}

    def test_range_wins_over_line(self):
        draft = CommentDraft(file="f", line=3, message="m", range=CommentRange(start_line=3, end_line=5))
        entry = build_comment_payload([draft])["f"][0]
        assert "line" not in entry
        assert entry["range"] == {"start_line": 3, "end_line": 5}

    def test_range_characters_included_when_set(self):
        draft = CommentDraft(
            file="f", message="m", range=CommentRange(start_line=1, end_line=1, start_character=0, end_character=4)
        )
        entry = build_comment_payload([draft])["f"][0]
        assert entry["range"] == {"start_line": 1, "end_line": 1, "start_character": 0, "end_character": 4}

    def test_unresolved_only_sent_when_true(self):
        drafts = [
            CommentDraft(file="f", line=1, message="a", unresolved=True),
            CommentDraft(file="f", line=2, message="b", unresolved=False),
        ]
        entries = build_comment_payload(drafts)["f"]
        assert entries[0]["unresolved"] is True
        assert "unresolved" not in entries[1]

    def test_side_included_when_valid(self):
        entry = build_comment_payload([CommentDraft(file="f", line=1, message="m", side="PARENT")])["f"][0]
        assert entry["side"] == "PARENT"

    def test_summary(self):
        payload = {"a": [{}, {}], "b": [{}]}
        assert summarize_payload(payload) == "3 comment(s) across 2 file(s)"


class TestPosting:
    def test_inline_comments_posted_in_one_request(self):
        client = MagicMock()
        drafts = [CommentDraft(file="f", line=1, message="x"), CommentDraft(file="g", line=2, message="y")]
        post_inline_comments(client, "123", drafts)
        client.post_review.assert_called_once_with(
            "123", {"comments": {"f": [{"line": 1, "message": "x"}], "g": [{"line": 2, "message": "y"}]}}
        )

    def test_inline_failure_raises_submission_error_with_summary(self):
        client = MagicMock()
        client.post_review.side_effect = GerritApiError("Forbidden", status=403)
        with pytest.raises(SubmissionError) as exc_info:
            post_inline_comments(client, "123", [CommentDraft(file="f", line=1, message="x")])
        assert exc_info.value.summary == "1 comment(s) across 1 file(s)"
        assert "403" in str(exc_info.value)

    def test_message_posted(self):
        client = MagicMock()
        post_message(client, "123", "LGTM")
        client.post_review.assert_called_once_with("123", {"message": "LGTM"})

    def test_message_failure_raises_submission_error(self):
        client = MagicMock()
        client.post_review.side_effect = GerritApiError("Conflict", status=409)
        with pytest.raises(SubmissionError):
            post_message(client, "123", "LGTM")


class TestParseCommentJson:
    def test_plain_array(self):
        assert parse_comment_json('[{"file": "a"}]') == [{"file": "a"}]

    def test_strips_outer_fence(self):
        assert parse_comment_json('```json\n[{"file": "a"}]\n```') == [{"file": "a"}]

    def test_preserves_backticks_inside_messages(self):
        data = [{"file": "a", "line": 1, "message": "Use ```x``` here"}]
        assert parse_comment_json(json.dumps(data)) == data

    def test_empty_array(self):
        assert parse_comment_json("[]") == []

    def test_invalid_json_raises(self):
        with pytest.raises(ResponseParseError) as exc_info:
            parse_comment_json("not json")
        assert exc_info.value.raw_output == "not json"

    def test_non_array_raises(self):
        with pytest.raises(ResponseParseError):
            parse_comment_json('{"file": "a"}')


class TestPostCommentInput:
    def test_plain_message(self):
        client = MagicMock()
        assert post_comment_input(client, "123", "Looks good") is None
        client.post_review.assert_called_once_with("123", {"message": "Looks good"})

    def test_plain_empty_message_rejected(self):
        with pytest.raises(ValueError):
            post_comment_input(MagicMock(), "123", "  \n")

    def test_batch_reconciles_and_posts_survivors(self):
        client = MagicMock()
        client.get_files.return_value = {"/COMMIT_MSG": {}, "src/app/Main.java": {}}
        text = json.dumps(
            [
                {"file": "Main.java", "line": 4, "message": "rename"},
                {"file": "Missing.java", "line": 1, "message": "dropped"},
            ]
        )

        result = post_comment_input(client, "123", text, batch=True)

        assert result.dropped == 1
        assert result.substitutions == [("Main.java", "src/app/Main.java")]
        client.post_review.assert_called_once_with(
            "123", {"comments": {"src/app/Main.java": [{"line": 4, "message": "rename"}]}}
        )

    def test_batch_with_nothing_valid_posts_nothing(self):
        client = MagicMock()
        client.get_files.return_value = {"a.py": {}}
        result = post_comment_input(client, "123", '[{"file": "a.py"}]', batch=True)
        assert result.comments == []
        assert result.dropped == 1
        client.post_review.assert_not_called()

    def test_batch_invalid_json_raises(self):
        client = MagicMock()
        with pytest.raises(ResponseParseError):
            post_comment_input(client, "123", "{oops", batch=True)
        client.post_review.assert_not_called()
