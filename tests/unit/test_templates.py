from __future__ import annotations

import dataclasses

import pytest

from bulk_upload.models.templates import TEMPLATE_TYPES, UnknownTemplateType, ValueKind, get_template


def test_four_template_types():
    assert set(TEMPLATE_TYPES) == {"transactions", "categories", "origins", "banks"}


@pytest.mark.parametrize("template_type", ["transactions", "categories", "origins", "banks"])
def test_get_template_known(template_type):
    t = get_template(template_type)
    assert t.template_type == template_type
    assert t.columns
    assert t.sample_rows


@pytest.mark.parametrize("bad", ["invalid", "", "Transactions", None])
def test_get_template_unknown(bad):
    with pytest.raises(UnknownTemplateType) as exc:
        get_template(bad)
    assert str(bad) in str(exc.value)


def test_unknown_template_type_is_value_error():
    with pytest.raises(ValueError):
        get_template("invalid")


def test_transactions_columns_in_order():
    t = get_template("transactions")
    assert t.column_names == [
        "Date",
        "Origin",
        "Bank",
        "Flow",
        "Major Category",
        "Category",
        "Sub Category",
        "Description",
        "Income Amount",
        "Outgoing Amount",
        "Notes",
    ]
    required = {c.name for c in t.columns if c.required}
    assert required == {"Date", "Bank", "Flow"}
    assert t.column("Date").kind is ValueKind.DATE
    assert t.column("Outgoing Amount").kind is ValueKind.AMOUNT
    assert t.column("Flow").kind is ValueKind.FLOW


def test_origins_and_banks_require_only_name():
    for template_type in ("origins", "banks"):
        t = get_template(template_type)
        assert t.column_names == ["Name"]
        assert t.columns[0].required


def test_categories_all_required():
    t = get_template("categories")
    assert t.column_names == ["Flow", "Major Category", "Category", "Sub Category"]
    assert all(c.required for c in t.columns)


def test_column_index_unknown_sorts_last():
    t = get_template("banks")
    assert t.column_index("Name") == 0
    assert t.column_index("Nope") == 1
    assert t.column("Nope") is None


def test_column_specs_are_immutable():
    t = get_template("transactions")
    with pytest.raises(dataclasses.FrozenInstanceError):
        t.columns[0].required = False  # type: ignore[misc]
