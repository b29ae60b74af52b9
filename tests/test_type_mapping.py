"""Tests for SQL -> C# type mapping and template loading."""

import pytest

from efrev.emission.type_mapping import clr_type_for
from efrev.schema.models import Column
from efrev.templates.loader import load_template, render_template


@pytest.mark.parametrize(
    "data_type, nullable, expected",
    [
        ("int", False, "int"),
        ("int", True, "int?"),
        ("BIGINT", False, "long"),
        ("nvarchar", True, "string"),
        ("VARCHAR(100)", False, "string"),
        ("decimal(18,2)", True, "decimal?"),
        ("int unsigned", False, "int"),
        ("tinyint(1)", False, "bool"),
        ("tinyint", False, "byte"),
        ("datetime2", True, "DateTime?"),
        ("uniqueidentifier", False, "Guid"),
        ("varbinary", True, "byte[]"),
        ("geography", False, "string"),
    ],
)
def test_clr_type_for(data_type, nullable, expected):
    assert clr_type_for(Column(name="Value", data_type=data_type, nullable=nullable)) == expected


def test_templates_render():
    rendered = render_template(
        load_template("configuration_class.txt"),
        entity_name="Order",
        statements="            ToTable(\"Order\");",
    )
    assert "public class OrderConfiguration : EntityTypeConfiguration<Order>" in rendered
    assert 'ToTable("Order");' in rendered


def test_missing_template():
    with pytest.raises(FileNotFoundError):
        load_template("does_not_exist.txt")
