import json
from pathlib import Path
from typing import Any

import httpx
import pytest

from smartdc import cli
from smartdc.client import CloudAPI, create_client
from smartdc.settings import Settings


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("SDC_URL", "SDC_CLI_URL", "SDC_ACCOUNT", "SDC_CLI_ACCOUNT", "SDC_KEY_ID"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("SSH_AUTH_SOCK", raising=False)
    monkeypatch.chdir(tmp_path)


def _fake_cloud(monkeypatch: pytest.MonkeyPatch, handler: Any) -> list[Settings]:
    opened: list[Settings] = []

    def open_client(settings: Settings, agent: Any) -> CloudAPI:
        opened.append(settings)
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return create_client(
            url="https://cloudapi.test",
            account="jill",
            username="jill",
            password="secret",
            retries=0,
            http=http,
        )

    monkeypatch.setattr(cli, "_open_client", open_client)
    return opened


def test_no_command_prints_help(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main([]) == 0
    assert "usage: sdc" in capsys.readouterr().out


def test_getaccount_prints_json(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    opened = _fake_cloud(
        monkeypatch, lambda request: httpx.Response(200, json={"login": "jill", "id": "u-1"})
    )

    code = cli.main(["-u", "https://cloudapi.test", "-a", "jill", "getaccount"])

    assert code == 0
    assert json.loads(capsys.readouterr().out) == {"id": "u-1", "login": "jill"}
    assert opened[0].url == "https://cloudapi.test"
    assert opened[0].account == "jill"


def test_listmachines_all_follows_pages(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    offsets: list[str | None] = []

    def handler(request: httpx.Request) -> httpx.Response:
        offset = request.url.params.get("offset")
        offsets.append(offset)
        start = int(offset or 0)
        body = [{"id": str(i)} for i in range(start, min(start + 2, 3))]
        headers = {"x-resource-count": "3", "x-query-limit": "2"}
        return httpx.Response(200, headers=headers, json=body)

    _fake_cloud(monkeypatch, handler)

    code = cli.main(["listmachines", "--all", "--tag", "role=db"])

    assert code == 0
    assert [m["id"] for m in json.loads(capsys.readouterr().out)] == ["0", "1", "2"]
    assert offsets == [None, "2"]


def test_countmachines_prints_count(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    _fake_cloud(
        monkeypatch,
        lambda request: httpx.Response(
            200, headers={"x-resource-count": "7", "x-query-limit": "1000"}
        ),
    )

    assert cli.main(["countmachines", "--filter", "state=running"]) == 0
    assert json.loads(capsys.readouterr().out) == {"count": 7}


def test_deletemachine_prints_nothing(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    methods: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        return httpx.Response(204)

    _fake_cloud(monkeypatch, handler)

    assert cli.main(["deletemachine", "abc"]) == 0
    assert methods == ["DELETE"]
    assert capsys.readouterr().out == ""


def test_gone_resource_exits_3(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    _fake_cloud(
        monkeypatch,
        lambda request: httpx.Response(410, json={"code": "ResourceGone", "message": "gone"}),
    )

    assert cli.main(["getmachine", "abc"]) == 3
    assert "Object is Gone (410)" in capsys.readouterr().err


def test_api_error_exits_3_with_code(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    _fake_cloud(
        monkeypatch,
        lambda request: httpx.Response(
            503, json={"code": "ServiceUnavailable", "message": "try later"}
        ),
    )

    assert cli.main(["listpackages"]) == 3
    assert "sdc: error (ServiceUnavailable): try later" in capsys.readouterr().err


def test_bad_filter_is_rejected(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    _fake_cloud(monkeypatch, lambda request: httpx.Response(200, json=[]))

    assert cli.main(["listimages", "--filter", "public"]) == 2
    assert "expected key=value" in capsys.readouterr().err


def test_missing_account_exits_1(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["-u", "https://cloudapi.test", "getaccount"]) == 1
    assert "SDC_ACCOUNT" in capsys.readouterr().err


def test_unreadable_identity_exits_2(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = cli.main(
        [
            "-u",
            "https://cloudapi.test",
            "-a",
            "jill",
            "-i",
            str(tmp_path / "missing_rsa"),
            "getaccount",
        ]
    )

    assert code == 2
    assert "unable to load signing key" in capsys.readouterr().err


class ClosingAgent:
    instances: list["ClosingAgent"] = []

    def __init__(self) -> None:
        self.closed = False
        ClosingAgent.instances.append(self)

    def close(self) -> None:
        self.closed = True


def test_agent_connection_is_closed_after_command(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("SSH_AUTH_SOCK", "/tmp/agent.sock")
    monkeypatch.setattr(cli, "SSHAgent", ClosingAgent)
    ClosingAgent.instances.clear()
    _fake_cloud(monkeypatch, lambda request: httpx.Response(200, json={"login": "jill"}))

    assert cli.main(["getaccount"]) == 0
    assert len(ClosingAgent.instances) == 1
    assert ClosingAgent.instances[0].closed is True


def test_agent_connection_is_closed_after_failure(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("SSH_AUTH_SOCK", "/tmp/agent.sock")
    monkeypatch.setattr(cli, "SSHAgent", ClosingAgent)
    ClosingAgent.instances.clear()
    _fake_cloud(monkeypatch, lambda request: httpx.Response(404, json={"message": "nope"}))

    assert cli.main(["getaccount"]) == 3
    assert ClosingAgent.instances[0].closed is True
