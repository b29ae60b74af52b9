"""Tests for the Typer CLI."""

import json

import pytest
from typer.testing import CliRunner

from efrev.cli.app import app
from efrev.config.logging import setup_logging
from efrev.schema.models import SchemaSnapshot
from efrev.schema.snapshot import load_snapshot, save_snapshot

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_logging():
    """Commands attach log handlers to the runner's stdout; reattach afterwards."""
    yield
    setup_logging()


@pytest.fixture
def snapshot_path(tmp_path, shop, school):
    path = tmp_path / "schema.json"
    save_snapshot(SchemaSnapshot(database_name="School", tables=shop + school), path)
    return path


def _source_args(tmp_path, snapshot_path):
    return [
        "--provider", "Snapshot",
        "--connection", str(snapshot_path),
        "--settings", str(tmp_path / "no-appsettings.json"),
    ]


def test_init_writes_config_files(tmp_path):
    result = runner.invoke(app, ["init", str(tmp_path / "conf")])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "conf" / "efrev.json").exists()
    assert (tmp_path / "conf" / "appsettings.json").exists()
    assert "Created" in result.output


def test_generate(tmp_path, snapshot_path):
    out = tmp_path / "gen"
    result = runner.invoke(
        app,
        ["generate", *_source_args(tmp_path, snapshot_path), "--output", str(out), "--namespace", "Cli.Data",
         "--no-pluralize"],
    )
    assert result.exit_code == 0, result.output
    assert "Complete" in result.output

    order = (out / "Entities" / "Order.cs").read_text(encoding="utf-8")
    assert "namespace Cli.Data" in order
    assert "ICollection<OrderItem> OrderItem {" in order
    assert (out / "Configurations" / "StudentConfiguration.cs").exists()


def test_generate_uses_config_file(tmp_path, snapshot_path):
    config = tmp_path / "efrev.json"
    config.write_text(
        json.dumps({"Namespace": "FromConfig.Data", "ElementsToGenerate": ["DbContext"], "DbContextName": "SchoolDb"}),
        encoding="utf-8",
    )
    out = tmp_path / "gen"
    result = runner.invoke(
        app, ["generate", *_source_args(tmp_path, snapshot_path), "--config", str(config), "--output", str(out)]
    )
    assert result.exit_code == 0, result.output
    context = (out / "SchoolDb.cs").read_text(encoding="utf-8")
    assert "namespace FromConfig.Data" in context
    assert not (out / "Entities" / "Order.cs").exists()


def test_generate_without_connection_fails(tmp_path):
    result = runner.invoke(app, ["generate", "--settings", str(tmp_path / "none.json")])
    assert result.exit_code == 1
    assert "Error: Connection string is required" in result.output


def test_generate_unknown_provider_fails(tmp_path):
    result = runner.invoke(
        app,
        ["generate", "--provider", "Oracle", "--connection", "x", "--settings", str(tmp_path / "none.json"),
         "--output", str(tmp_path / "gen")],
    )
    assert result.exit_code == 1
    assert "Unsupported provider" in result.output


def test_analyze_writes_relationships(tmp_path, snapshot_path):
    out = tmp_path / "relationships.json"
    result = runner.invoke(app, ["analyze", *_source_args(tmp_path, snapshot_path), "--output", str(out)])
    assert result.exit_code == 0, result.output

    relationships = json.loads(out.read_text(encoding="utf-8"))
    kinds = sorted(r["kind"] for r in relationships)
    assert kinds == ["many-to-many", "one-to-many", "one-to-many"]
    junction = next(r for r in relationships if r["kind"] == "many-to-many")
    assert junction["junction"]["table_name"] == "Enrollment"


def test_inspect_writes_snapshot(tmp_path, snapshot_path):
    out = tmp_path / "copy.json"
    result = runner.invoke(app, ["inspect", str(out), *_source_args(tmp_path, snapshot_path)])
    assert result.exit_code == 0, result.output
    assert load_snapshot(out).table_names == load_snapshot(snapshot_path).table_names


def test_analyze_unwritable_output_fails(tmp_path, snapshot_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    out = blocker / "relationships.json"
    result = runner.invoke(app, ["analyze", *_source_args(tmp_path, snapshot_path), "--output", str(out)])
    assert result.exit_code == 1
    assert "Error:" in result.output
    assert not isinstance(result.exception, OSError)
