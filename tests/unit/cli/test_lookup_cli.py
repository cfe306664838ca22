"""Tests for the lookup command-line entry point."""

from __future__ import annotations

import json

import pytest

from replookup.cli.lookup import build_target, main, parse_args
from replookup.models import ReputationReport, SocialPlatform, TargetPerson


class _StubReputationService:
    def __init__(self, *, error: Exception | None = None) -> None:
        self.error = error
        self.targets = []

    async def generate_report(self, target: TargetPerson) -> ReputationReport:
        self.targets.append(target)
        if self.error:
            raise self.error
        return ReputationReport(
            id="report-cli",
            target_person=target,
            generated_at="2024-01-01T00:00:00+00:00",
            categories={},
        )


def test_build_target_collects_handles_and_photo(tmp_path):
    photo = tmp_path / "ada.png"
    photo.write_bytes(b"png-bytes")
    args = parse_args(
        ["--name", "Ada", "--handle", "github=ada", "--handle", "Twitter=@ada", "--photo", str(photo)]
    )

    target = build_target(args)

    assert target.social_handles == {SocialPlatform.GITHUB: "ada", SocialPlatform.TWITTER: "@ada"}
    assert target.photo == b"png-bytes"
    assert target.photo_content_type == "image/png"


def test_invalid_handle_is_rejected():
    with pytest.raises(SystemExit):
        parse_args(["--name", "Ada", "--handle", "myspace=ada"])
    with pytest.raises(SystemExit):
        parse_args(["--name", "Ada", "--handle", "github"])


def test_main_writes_report_json(tmp_path):
    output = tmp_path / "out" / "report.json"
    service = _StubReputationService()

    exit_code = main(["--name", "Ada", "--output", str(output)], service=service)

    assert exit_code == 0
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert payload["id"] == "report-cli"
    assert payload["targetPerson"]["name"] == "Ada"


def test_main_prints_to_stdout(capsys):
    assert main(["--name", "Ada"], service=_StubReputationService()) == 0

    assert json.loads(capsys.readouterr().out)["id"] == "report-cli"


def test_main_returns_non_zero_on_failure():
    assert main(["--name", "Ada"], service=_StubReputationService(error=RuntimeError("boom"))) == 1
