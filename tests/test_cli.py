"""Tests for the ``deadlinks`` command."""

from __future__ import annotations

import json

import httpx
import pytest
import respx
from typer.testing import CliRunner

from cli.main import EXIT_DEAD_LINKS, EXIT_SETUP_ERROR, app

runner = CliRunner()


@pytest.fixture(autouse=True)
def cli_settings(make_settings, monkeypatch):
    """Pin CLI settings and keep logging handlers out of the runner's streams."""
    settings = make_settings()
    monkeypatch.setattr("cli.main.settings", settings)
    monkeypatch.setattr("cli.main.configure_logging", lambda verbose=False: None)
    return settings


def test_dead_links_still_exit_zero(docs_root, write_doc, tmp_path) -> None:
    write_doc("a.md", "[gone](../gone.md) [ext](https://down.example/)\n")
    output = tmp_path / "report.json"

    with respx.mock:
        respx.get("https://down.example/").mock(side_effect=httpx.ConnectError("refused"))
        result = runner.invoke(app, [str(docs_root), "--output", str(output)])

    assert result.exit_code == 0, result.output
    assert "Dead internal: 1" in result.stdout
    assert "Dead external: 1" in result.stdout
    data = json.loads(output.read_text(encoding="utf-8"))
    assert [e["url"] for e in data["dead_internal"]] == ["../gone.md"]
    assert [e["url"] for e in data["dead_external"]] == ["https://down.example/"]
    assert data["dead_external"][0]["status"] is None


def test_strict_exits_nonzero_on_dead_links(docs_root, write_doc, tmp_path) -> None:
    write_doc("a.md", "[gone](../gone.md)\n")

    result = runner.invoke(
        app, [str(docs_root), "--strict", "--output", str(tmp_path / "r.json")]
    )

    assert result.exit_code == EXIT_DEAD_LINKS


def test_strict_exits_zero_when_clean(docs_root, write_doc, tmp_path) -> None:
    write_doc("a.md", "[b](../docs/b.md)\n")
    write_doc("b.md", "")

    result = runner.invoke(
        app, [str(docs_root), "--strict", "--output", str(tmp_path / "r.json")]
    )

    assert result.exit_code == 0, result.output


def test_missing_root_is_a_setup_error(tmp_path) -> None:
    output = tmp_path / "r.json"
    result = runner.invoke(app, [str(tmp_path / "missing"), "--output", str(output)])

    assert result.exit_code == EXIT_SETUP_ERROR
    assert not output.exists()


def test_default_report_path_from_settings(docs_root, write_doc, cli_settings) -> None:
    write_doc("a.md", "# nothing\n")

    result = runner.invoke(app, [str(docs_root)])

    assert result.exit_code == 0, result.output
    assert cli_settings.report_path.exists()


def test_include_alive_and_options(docs_root, write_doc, tmp_path) -> None:
    write_doc("a.md", "[ok](https://ok.example/)\n")
    output = tmp_path / "r.json"

    with respx.mock:
        respx.get("https://ok.example/").mock(return_value=httpx.Response(200))
        result = runner.invoke(
            app,
            [
                str(docs_root),
                "--output",
                str(output),
                "--include-alive",
                "--concurrency",
                "2",
                "--timeout",
                "3",
            ],
        )

    assert result.exit_code == 0, result.output
    data = json.loads(output.read_text(encoding="utf-8"))
    assert [(e["url"], e["status"]) for e in data["alive"]] == [("https://ok.example/", 200)]
