"""Tests for sift.cli module."""

import json
from unittest.mock import patch

from sift.cli import main
from sift.core.store import SqliteStore
from sift.fetchers.newsletter_page import DetectionResult


def _json_objects(output: str):
    decoder = json.JSONDecoder()
    objects, index = [], 0
    output = output.strip()
    while index < len(output):
        obj, end = decoder.raw_decode(output, index)
        objects.append(obj)
        index = end
        while index < len(output) and output[index].isspace():
            index += 1
    return objects


class TestExtractCommand:
    def test_prints_result(self, tmp_path, capsys) -> None:
        path = tmp_path / "issue.html"
        path.write_text("<h1>Weekly Digest</h1><p>Markets rose 3% today on strong earnings.</p>")

        assert main(["extract", str(path), "--source", "Test Co"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["success"] is True
        assert data["wordCount"] == 9
        assert data["metadata"]["source"] == "Test Co"

    def test_missing_file(self, tmp_path) -> None:
        assert main(["extract", str(tmp_path / "missing.html")]) == 1


class TestInboxCommands:
    def test_add_user_block_route_approve(self, tmp_path, capsys, no_signing_key) -> None:
        db = str(tmp_path / "sift.db")

        assert main(["add-user", "jane@example.com", "--db", db]) == 0
        user = json.loads(capsys.readouterr().out)

        assert main(["block", user["id"], "keyword", "webinar", "--db", db]) == 0
        capsys.readouterr()

        payloads = []
        for index, subject in enumerate(["Morning Brief #1", "Free webinar tomorrow"]):
            path = tmp_path / f"payload{index}.json"
            path.write_text(json.dumps({
                "recipient": user["inboxEmail"],
                "sender": "news@morning.example.com",
                "subject": subject,
                "body-html": "<h1>Weekly Digest</h1><p>Markets rose 3% today on strong earnings.</p>",
            }))
            payloads.append(str(path))

        assert main(["route", *payloads, "--db", db]) == 0
        stored, blocked = _json_objects(capsys.readouterr().out)
        assert stored["approvalStatus"] == "pending"
        assert blocked["approvalStatus"] == "blocked"
        assert blocked["contentId"] is None

        assert main(["approve", stored["contentId"], "--db", db]) == 0
        assert SqliteStore(db).get_content(stored["contentId"]).approval_status.value == "approved"

    def test_route_unknown_inbox_fails(self, tmp_path, capsys, no_signing_key) -> None:
        path = tmp_path / "payload.json"
        path.write_text(json.dumps({"recipient": "nobody@inbox.siftly.space", "sender": "a@b.com"}))
        assert main(["route", str(path), "--db", str(tmp_path / "sift.db")]) == 1
        assert _json_objects(capsys.readouterr().out)[0]["success"] is False

    def test_route_rejects_bad_signature(self, tmp_path, capsys, monkeypatch) -> None:
        monkeypatch.setenv("MAILGUN_WEBHOOK_SIGNING_KEY", "secret")
        path = tmp_path / "payload.json"
        path.write_text(json.dumps({
            "recipient": "jane@inbox.siftly.space",
            "signature": {"signature": "bad", "timestamp": "1", "token": "t"},
        }))
        assert main(["route", str(path), "--db", str(tmp_path / "sift.db")]) == 1
        assert _json_objects(capsys.readouterr().out)[0]["error"] == "Invalid signature"

    def test_approve_unknown_content(self, tmp_path) -> None:
        assert main(["approve", "missing", "--db", str(tmp_path / "sift.db")]) == 1


class TestDetectCommand:
    @patch("sift.cli.NewsletterPageDetector")
    def test_prints_detection(self, mock_detector_cls, capsys) -> None:
        mock_detector_cls.return_value.detect.return_value = DetectionResult(success=True, name="Acme")
        assert main(["detect", "acme.org"]) == 0
        assert json.loads(capsys.readouterr().out)["name"] == "Acme"

    @patch("sift.cli.NewsletterPageDetector")
    def test_failure_exit_code(self, mock_detector_cls, capsys) -> None:
        mock_detector_cls.return_value.detect.return_value = DetectionResult(success=False, message="nope")
        assert main(["detect", "acme.org"]) == 1
