"""Tests for the end-to-end generation pipeline."""

import logging

import pytest

from efrev.config.settings import Settings
from efrev.errors import SchemaReadError
from efrev.generation.pipeline import run_code_generation
from efrev.readers.base import BaseSchemaReader
from efrev.schema.models import SchemaSnapshot
from efrev.schema.snapshot import save_snapshot


class _StaticReader(BaseSchemaReader):
    def __init__(self, tables):
        self.tables = tables

    def read_tables(self):
        return list(self.tables)


class _BrokenReader(BaseSchemaReader):
    def read_tables(self):
        raise SchemaReadError("database unreachable")


def test_generates_files_from_reader(tmp_path, shop, school, caplog):
    settings = Settings(connection_string="unused", output_directory=tmp_path / "out")
    with caplog.at_level(logging.INFO, logger="efrev"):
        plan = run_code_generation(settings, reader=_StaticReader(shop + school))

    out = tmp_path / "out"
    assert (out / "Entities" / "Student.cs").exists()
    assert not (out / "Entities" / "Enrollment.cs").exists()
    assert (out / "Configurations" / "OrderConfiguration.cs").exists()
    assert (out / "AppDbContext.cs").exists()
    assert len(plan.relationships) == 3
    assert any("Read 6 table(s)" in r.getMessage() for r in caplog.records)


def test_snapshot_provider(tmp_path, shop):
    snapshot_path = tmp_path / "schema.json"
    save_snapshot(SchemaSnapshot(tables=shop), snapshot_path)
    settings = Settings(
        provider="Snapshot",
        connection_string=str(snapshot_path),
        output_directory=tmp_path / "gen",
        elements_to_generate=["POCO"],
    )
    plan = run_code_generation(settings)
    assert [e.entity_name for e in plan.model_entities] == ["Customer", "Order", "OrderItem"]
    assert sorted(p.name for p in (tmp_path / "gen" / "Entities").iterdir()) == [
        "Customer.cs",
        "Order.cs",
        "OrderItem.cs",
    ]


def test_missing_reference_does_not_fail_run(tmp_path, order):
    settings = Settings(connection_string="unused", output_directory=tmp_path)
    plan = run_code_generation(settings, reader=_StaticReader([order]))
    assert plan.failures == {}
    assert [w.code for w in plan.warnings] == ["MISSING_REFERENCED_TABLE"]
    assert "public int CustomerId" in (tmp_path / "Entities" / "Order.cs").read_text(encoding="utf-8")


def test_failure_is_logged_and_reraised(tmp_path, caplog):
    settings = Settings(connection_string="unused", output_directory=tmp_path)
    with caplog.at_level(logging.ERROR, logger="efrev"):
        with pytest.raises(SchemaReadError, match="database unreachable"):
            run_code_generation(settings, reader=_BrokenReader())
    assert any("Code generation failed" in r.getMessage() for r in caplog.records)
