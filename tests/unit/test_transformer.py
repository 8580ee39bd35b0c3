from __future__ import annotations

from dataclasses import replace

import pytest

from bulk_upload.models.row_data import RawRow
from bulk_upload.models.templates import get_template
from bulk_upload.services.transformer import (
    AI_CATEGORIZATION,
    AMOUNT_REQUIRED,
    DATE_NORMALIZATION,
    FLOW_AUTO_DETECTION,
    RowTransformer,
)


def _columns(outcome) -> list[str]:
    return [e.column for e in outcome.errors]


def test_valid_row_has_no_errors(transform, make_row):
    outcome = transform(make_row())
    assert outcome.errors == ()
    assert outcome.row.values["Outgoing Amount"] == 42.3
    assert outcome.row.values["Flow"] == "SAIDA"
    assert outcome.row.suggestions == ()


def test_invalid_row_reports_each_offending_column(transform, make_row):
    row = make_row(
        Date="",
        Origin="Diogo",
        Bank="",
        Flow="INVALID_FLOW",
        Major_Category="CUSTOS_VARIAVEIS",
        Category="Food & Dining",
        Sub_Category="Groceries",
        Description="Test",
        Income_Amount=None,
        Outgoing_Amount="invalid_amount",
    )
    outcome = transform(row)
    assert set(_columns(outcome)) == {"Date", "Bank", "Flow", "Outgoing Amount"}
    by_column = {e.column: e for e in outcome.errors}
    assert by_column["Date"].error == "Date is required"
    assert by_column["Bank"].error == "Bank is required"
    assert by_column["Flow"].error == "Invalid flow value"
    assert by_column["Flow"].value == "INVALID_FLOW"
    assert by_column["Outgoing Amount"].error == "Invalid amount"
    assert all(e.row == 2 for e in outcome.errors)


def test_errors_follow_template_column_order(transform, make_row):
    outcome = transform(make_row(Date="", Bank="", Flow="nope", Outgoing_Amount="x"))
    assert _columns(outcome) == ["Date", "Bank", "Flow", "Outgoing Amount"]


def test_portuguese_row_is_normalized_and_categorized(transform, make_row):
    row = make_row(
        Date="15/01/2024",
        Origin="comum",
        Flow=None,
        Major_Category=None,
        Category=None,
        Sub_Category=None,
        Description="Continente compras semana",
        Outgoing_Amount="85,50",
    )
    outcome = transform(row)
    values = outcome.row.values
    assert outcome.errors == ()
    assert values["Date"] == "2024-01-15"
    assert values["Origin"] == "Comum"
    assert values["Outgoing Amount"] == 85.5
    assert values["Flow"] == "SAIDA"
    assert values["Category"] == "Groceries"
    assert values["Major Category"] == "CUSTOS_VARIAVEIS"

    log = {(t.field, t.transformation): t for t in outcome.row.transformations}
    date_entry = log[("Date", DATE_NORMALIZATION)]
    assert (date_entry.before, date_entry.after) == ("15/01/2024", "2024-01-15")
    assert ("Flow", FLOW_AUTO_DETECTION) in log
    assert ("Origin", "Text Normalization") in log
    assert ("Outgoing Amount", "Amount Normalization") in log
    assert ("Category", AI_CATEGORIZATION) in log


def test_galp_description_suggests_fuel(transform, make_row):
    row = make_row(
        Category=None,
        Sub_Category=None,
        Major_Category=None,
        Description="galp gas station fuel purchase",
    )
    outcome = transform(row)
    suggestions = outcome.row.suggestions
    assert suggestions[0].field == "Category"
    assert suggestions[0].suggested_category == "Fuel"
    assert "galp" in suggestions[0].reasoning
    assert {s.field for s in suggestions} == {"Category", "Sub Category", "Major Category"}
    assert outcome.row.values["Sub Category"] == "Car Fuel"


def test_prediction_only_fills_blank_fields(transform, make_row):
    row = make_row(Category="Fuel", Sub_Category=None, Major_Category="CUSTOS_VARIAVEIS", Description="galp")
    outcome = transform(row)
    assert [s.field for s in outcome.row.suggestions] == ["Sub Category"]
    assert outcome.row.values["Category"] == "Fuel"
    assert outcome.row.values["Sub Category"] == "Car Fuel"


def test_prediction_respects_filled_major_category(transform, make_row):
    row = make_row(Category=None, Sub_Category=None, Major_Category="CUSTOS_FIXOS", Description="galp")
    outcome = transform(row)
    # Fuel lives under CUSTOS_VARIAVEIS, so nothing fits this row
    assert outcome.row.suggestions == ()
    assert outcome.row.values["Category"] is None
    assert outcome.row.values["Major Category"] == "CUSTOS_FIXOS"
    assert outcome.errors == ()


def test_prediction_picks_rule_under_filled_major_category(transform, make_row):
    row = make_row(Category=None, Sub_Category=None, Major_Category="CUSTOS_FIXOS", Description="galp gas")
    outcome = transform(row)
    assert outcome.row.values["Category"] == "Utilities"
    assert outcome.row.values["Sub Category"] == "Gas"
    assert [s.field for s in outcome.row.suggestions] == ["Category", "Sub Category"]


def test_no_prediction_without_match(transform, make_row):
    outcome = transform(make_row(Category=None, Description="something unrelated"))
    assert outcome.row.suggestions == ()
    assert outcome.row.values["Category"] is None
    assert outcome.errors == ()


def test_no_prediction_without_description(transform, make_row):
    outcome = transform(make_row(Category=None, Description=None))
    assert outcome.row.suggestions == ()


def test_income_flow_detected_from_income_amount(transform, make_row):
    outcome = transform(make_row(Flow=None, Income_Amount="3.500,00", Outgoing_Amount=None))
    assert outcome.errors == ()
    assert outcome.row.values["Flow"] == "ENTRADA"
    assert outcome.row.values["Income Amount"] == 3500.0


def test_flow_case_is_normalized(transform, make_row):
    outcome = transform(make_row(Flow=" saida "))
    assert outcome.errors == ()
    assert outcome.row.values["Flow"] == "SAIDA"


@pytest.mark.parametrize("flow", ["expense", "INCOME", "Saída"])
def test_non_canonical_flow_is_rejected(transform, make_row, flow):
    outcome = transform(make_row(Flow=flow))
    assert [(e.column, e.error) for e in outcome.errors] == [("Flow", "Invalid flow value")]
    assert outcome.row.values["Flow"] == flow


def test_configured_flow_alias(upload_config, make_row):
    cfg = replace(upload_config, flow_aliases={"EXPENSE": "SAIDA"})
    outcome = RowTransformer(cfg).transform(RawRow(2, make_row(Flow="expense")), get_template("transactions"))
    assert outcome.errors == ()
    assert outcome.row.values["Flow"] == "SAIDA"


def test_missing_both_amounts(transform, make_row):
    outcome = transform(make_row(Income_Amount=None, Outgoing_Amount=None))
    assert [(e.column, e.error) for e in outcome.errors] == [("Outgoing Amount", AMOUNT_REQUIRED)]


def test_blank_flow_and_amounts(transform, make_row):
    outcome = transform(make_row(Flow=None, Income_Amount=None, Outgoing_Amount=None))
    assert _columns(outcome) == ["Flow", "Outgoing Amount"]
    assert outcome.errors[0].error == "Flow is required"


def test_saida_with_income_amount(transform, make_row):
    outcome = transform(make_row(Flow="SAIDA", Income_Amount=10, Outgoing_Amount=None))
    errors = {e.column: e.error for e in outcome.errors}
    assert errors == {
        "Income Amount": "Income amount should be empty for SAIDA transactions",
        "Outgoing Amount": "Outgoing amount is required for SAIDA transactions",
    }


def test_entrada_with_outgoing_amount(transform, make_row):
    outcome = transform(make_row(Flow="ENTRADA", Income_Amount=10, Outgoing_Amount=5))
    assert [(e.column, e.error) for e in outcome.errors] == [
        ("Outgoing Amount", "Outgoing amount should be empty for ENTRADA transactions")
    ]


def test_negative_amount(transform, make_row):
    outcome = transform(make_row(Outgoing_Amount="-20"))
    assert [(e.column, e.error) for e in outcome.errors] == [("Outgoing Amount", "Amount cannot be negative")]


def test_invalid_date_keeps_raw_value(transform, make_row):
    outcome = transform(make_row(Date="31/02/2024"))
    assert outcome.errors[0].column == "Date"
    assert outcome.errors[0].error == "Invalid date format"
    assert outcome.errors[0].suggestion
    assert outcome.row.values["Date"] == "31/02/2024"


def test_invalid_major_category(transform, make_row):
    outcome = transform(make_row(Major_Category="FOOD"))
    assert outcome.errors[0].column == "Major Category"
    assert "CUSTOS_VARIAVEIS" in outcome.errors[0].suggestion


@pytest.mark.parametrize("template_type", ["origins", "banks"])
def test_name_templates(transform, template_type):
    empty = transform({"Name": ""}, template_type)
    assert [(e.column, e.error) for e in empty.errors] == [("Name", "Name is required")]
    filled = transform({"Name": "Revolut"}, template_type)
    assert filled.errors == ()


def test_origin_name_snaps_to_vocabulary(transform):
    outcome = transform({"Name": " joana "}, "origins")
    assert outcome.row.values["Name"] == "Joana"


def test_categories_template(transform):
    ok = transform({"Flow": "saida", "Major Category": "custos fixos", "Category": "Housing", "Sub Category": "Rent"}, "categories")
    assert ok.errors == ()
    assert ok.row.values["Flow"] == "SAIDA"
    assert ok.row.values["Major Category"] == "CUSTOS_FIXOS"

    bad = transform({"Flow": "", "Major Category": "nope", "Category": "", "Sub Category": None}, "categories")
    assert [(e.column, e.error) for e in bad.errors] == [
        ("Flow", "Flow is required"),
        ("Major Category", "Invalid major category"),
        ("Category", "Category is required"),
        ("Sub Category", "Sub Category is required"),
    ]


def test_raw_row_is_not_mutated(transform, make_row):
    values = make_row(Date="15/01/2024", Origin="comum")
    snapshot = dict(values)
    raw = RawRow(row_number=7, values=values)
    outcome = transform(raw.values, row=7)
    assert raw.values == snapshot
    assert outcome.row.row_number == 7


def test_custom_predictor_is_used(upload_config, make_row):
    class FixedPredictor:
        def predict(self, description, flow=None, category=None, major_category=None):
            return None

    t = RowTransformer(upload_config, predictor=FixedPredictor())
    outcome = t.transform(RawRow(2, make_row(Category=None, Description="galp")), get_template("transactions"))
    assert outcome.row.suggestions == ()
