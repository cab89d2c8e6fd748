from __future__ import annotations

import json
from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from conftest import BASE, FakeSession, make_response
from stereotype import cli
from stereotype.client import StereotypeClient
from stereotype.config import ClientConfig


@pytest.fixture
def wired(mocker: MockerFixture, session: FakeSession) -> FakeSession:
    client = StereotypeClient("t", ClientConfig(base_url=BASE, num_retries=0), session=session)
    mocker.patch.object(cli, "_make_client", return_value=client)
    return session


def test_livecheck(wired: FakeSession, capsys: pytest.CaptureFixture[str]) -> None:
    wired.add("GET", f"{BASE}/livecheck", make_response(200))
    assert cli.main(["livecheck"]) == 0
    assert capsys.readouterr().out.strip() == "ALIVE"
    assert wired.closed


def test_list(wired: FakeSession, capsys: pytest.CaptureFixture[str]) -> None:
    wired.add("GET", f"{BASE}/v1/templates", make_response(200, json_body=[{"templateId": "a", "canEdit": True}]))
    assert cli.main(["list", "--public"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out == [{"template_id": "a", "can_copy": False, "can_edit": True}]
    assert wired.calls[0].params == {"public": "true"}


def test_materialize_id_only(wired: FakeSession, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    bag = tmp_path / "bag.json"
    bag.write_text(json.dumps({"name": "Zoidberg"}), encoding="utf-8")
    wired.add(
        "POST",
        f"{BASE}/v1/templates/foo/materializations",
        make_response(201, headers={"Location": "/v1/materializations/m-1"}),
    )
    assert cli.main(["materialize", "foo", str(bag), "--id-only"]) == 0
    assert capsys.readouterr().out.strip() == "m-1"
    assert wired.calls[0].json == {"name": "Zoidberg"}


def test_put_rejects_bad_content_type(
    wired: FakeSession, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    body = tmp_path / "t.html"
    body.write_text("<p>{{x}}</p>", encoding="utf-8")
    assert cli.main(["put", "foo", str(body), "--content-type", "text/html"]) == 2
    assert "Invalid content type" in capsys.readouterr().err
    assert wired.calls == []


def test_missing_property_bag_file(wired: FakeSession, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["expand", str(tmp_path / "missing.json")]) == 2
    assert "does not exist" in capsys.readouterr().err


def test_missing_token(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.delenv("STEREOTYPE_TOKEN", raising=False)
    assert cli.main(["livecheck"]) == 2
    assert "Access token is required" in capsys.readouterr().err


def test_put_missing_body_file(wired: FakeSession, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    missing = tmp_path / "missing.mustache"
    assert cli.main(["put", "foo", str(missing), "--content-type", "text/mustache"]) == 2
    assert "does not exist" in capsys.readouterr().err
    assert wired.calls == []


def test_log_level_is_case_insensitive(wired: FakeSession) -> None:
    wired.add("GET", f"{BASE}/livecheck", make_response(200))
    assert cli.main(["--log-level", "debug", "livecheck"]) == 0


def test_unknown_log_level_is_a_usage_error(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as info:
        cli.main(["--log-level", "bogus", "livecheck"])
    assert info.value.code == 2
    assert "--log-level" in capsys.readouterr().err
