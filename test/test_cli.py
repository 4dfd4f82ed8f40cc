import json

import pytest
from typer.testing import CliRunner

from dockerdash import __version__, cli
from dockerdash.entry import main
from dockerdash.errors import RuntimeCommandError


runner = CliRunner()


@pytest.fixture
def client(monkeypatch, fake_client, make_row):
    c = fake_client(
        [
            make_row("alpha", "running"),
            make_row("web-b", "exited", group="proj1"),
            make_row("web-a", "running", group="proj1"),
            make_row("deadbeef", "exited", rid="deadbeef00112233"),
        ]
    )
    monkeypatch.setattr(cli, "_client", lambda: c)
    return c


def test_version() -> None:
    result = runner.invoke(cli.app, ["version"])
    assert result.exit_code == 0
    assert result.output.strip() == __version__


def test_ps_groups_members_under_stack(client) -> None:
    result = runner.invoke(cli.app, ["ps"])
    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0].startswith("alpha\talpha-012345\trunning\t")
    assert lines[2] == "proj1\t-\t1/2 running\tstack"
    assert lines[3].startswith("  web-a\t")
    assert lines[4].startswith("  web-b\t")


def test_ps_json(client) -> None:
    result = runner.invoke(cli.app, ["ps", "--json"])
    assert result.exit_code == 0
    objs = [json.loads(line) for line in result.output.splitlines()]
    assert [o["name"] for o in objs] == ["alpha", "deadbeef", "web-a", "web-b"]
    assert objs[2]["group"] == "proj1"


def test_ps_running_only_passes_flag(client) -> None:
    runner.invoke(cli.app, ["ps", "--running-only"])
    assert ("list", False) in client.calls


def test_start_and_stop_by_name(client) -> None:
    result = runner.invoke(cli.app, ["stop", "alpha"])
    assert result.exit_code == 0
    assert "stopped alpha" in result.output
    assert ("stop", "alpha-0123456789abcdef") in client.calls

    result = runner.invoke(cli.app, ["start", "web-b"])
    assert "started web-b" in result.output


def test_resolve_by_id_prefix(client) -> None:
    result = runner.invoke(cli.app, ["start", "dead"])
    assert result.exit_code == 0
    assert ("start", "deadbeef00112233") in client.calls


def test_ambiguous_name_exits_1(client, make_row) -> None:
    client.rows = [make_row("dup", rid="aaaa1111"), make_row("dup", rid="bbbb2222")]
    result = runner.invoke(cli.app, ["stop", "dup"])
    assert result.exit_code == 1
    assert "Ambiguous" in result.output
    assert not [c for c in client.calls if c[0] == "stop"]


def test_unknown_name_exits_1(client) -> None:
    result = runner.invoke(cli.app, ["logs", "nope"])
    assert result.exit_code == 1
    assert "Not found: nope" in result.output


def test_logs_prints_content(client) -> None:
    client.logs["alpha-0123456789abcdef"] = "one\ntwo\n"
    result = runner.invoke(cli.app, ["logs", "alpha", "-n", "2"])
    assert result.exit_code == 0
    assert result.output == "one\ntwo\n"


def test_command_error_exits_1(client) -> None:
    client.command_error = RuntimeCommandError("container is paused")
    result = runner.invoke(cli.app, ["stop", "alpha"])
    assert result.exit_code == 1
    assert "container is paused" in result.output


def test_doctor_without_docker_binary(monkeypatch) -> None:
    monkeypatch.setenv("DOCKERDASH_DOCKER_BIN", "/nonexistent/docker")
    result = runner.invoke(cli.app, ["doctor"])
    assert result.exit_code == 1
    assert "docker CLI: FAIL" in result.output


def test_entry_version(capsys) -> None:
    main(["--version"])
    assert capsys.readouterr().out.strip() == __version__


def test_entry_resource_first_shorthand(client, capsys) -> None:
    with pytest.raises(SystemExit) as ei:
        main(["web-a", "stop"])
    assert ei.value.code == 0
    assert "stopped web-a" in capsys.readouterr().out
    assert client.calls[-1][0] == "stop"


def test_version_matches_installed_metadata() -> None:
    from importlib.metadata import PackageNotFoundError, version

    try:
        expected = version("dockerdash")
    except PackageNotFoundError:
        expected = "0.0.0+dev"
    assert __version__ == expected
