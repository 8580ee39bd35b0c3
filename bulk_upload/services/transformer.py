from __future__ import annotations

import logging
from typing import Any

from ..models.config_models import UploadConfig
from ..models.row_data import AISuggestion, RawRow, TransformationLogEntry, TransformedRow
from ..models.templates import (
    AMOUNT_COLUMNS,
    ColumnSpec,
    TemplateDefinition,
    ValueKind,
)
from ..models.validation_result import RowOutcome, ValidationError
from .categorizer import CategoryPredictor
from .normalizers import (
    SUGGESTIONS,
    detect_flow,
    is_blank,
    normalize_amount,
    normalize_date,
    normalize_flow,
    normalize_major_category,
    normalize_text,
)

"""Row transformer & validator.

Turns one RawRow into one TransformedRow plus its validation errors, for a
given template. Rows are independent: nothing here depends on other rows, and
the only shared state is the read-only config and category predictor built at
construction time.

Order of work per row:
1. per-column normalization (date, amount, major category, text)
2. flow normalization / auto-detection from the populated amount column
3. income vs outgoing consistency checks
4. category prediction for blank Major Category / Category / Sub Category
5. required-field checks
Errors are reported at most once per column, in template column order.
"""

logger = logging.getLogger(__name__)

INCOME, OUTGOING = AMOUNT_COLUMNS
FLOW = "Flow"
DESCRIPTION = "Description"
# Category first: it is the suggestion users look at
PREDICTED_COLUMNS = ("Category", "Sub Category", "Major Category")

DATE_NORMALIZATION = "Date Normalization"
AMOUNT_NORMALIZATION = "Amount Normalization"
FLOW_NORMALIZATION = "Flow Normalization"
FLOW_AUTO_DETECTION = "Flow Auto-Detection"
MAJOR_CATEGORY_NORMALIZATION = "Major Category Normalization"
TEXT_NORMALIZATION = "Text Normalization"
AI_CATEGORIZATION = "AI Categorization"

AMOUNT_REQUIRED = "Income Amount or Outgoing Amount is required"

_REQUIRED_SUGGESTIONS = {
    ValueKind.DATE: "Use format YYYY-MM-DD (e.g. 2024-01-15)",
    ValueKind.FLOW: SUGGESTIONS["Invalid flow value"],
}


class _RowState:
    """Mutable scratch space for one row; never escapes transform()."""

    def __init__(self, raw: RawRow) -> None:
        self.raw = raw
        self.values: dict[str, Any] = raw.copy_values()
        self.log: list[TransformationLogEntry] = []
        self.errors: dict[str, ValidationError] = {}
        self.suggestions: list[AISuggestion] = []

    def fail(self, column: str, value: Any, message: str, suggestion: str | None = None) -> None:
        if column in self.errors:
            return
        self.errors[column] = ValidationError(
            row=self.raw.row_number,
            column=column,
            value=value,
            error=message,
            suggestion=suggestion if suggestion is not None else SUGGESTIONS.get(message),
        )

    def record(self, column: str, transformation: str, before: Any, after: Any) -> None:
        if before == after:
            return
        self.log.append(TransformationLogEntry(self.raw.row_number, column, transformation, before, after))


class RowTransformer:
    def __init__(self, config: UploadConfig, predictor: CategoryPredictor | None = None) -> None:
        self.config = config
        self.predictor = predictor or CategoryPredictor(config.category_rules)
        self._vocabularies: dict[str, tuple[str, ...]] = {"origins": config.origin_vocabulary}
        self._major_category_hint = "Use one of: " + ", ".join(config.major_categories)

    def transform(self, raw: RawRow, template: TemplateDefinition) -> RowOutcome:
        state = _RowState(raw)
        names = set(template.column_names)

        for spec in template.columns:
            if spec.kind is not ValueKind.FLOW:
                self._normalize_column(state, spec)

        if FLOW in names:
            self._apply_flow(state, detect=all(c in names for c in AMOUNT_COLUMNS))
        if all(c in names for c in AMOUNT_COLUMNS):
            self._check_amounts(state)
        if DESCRIPTION in names and all(c in names for c in PREDICTED_COLUMNS):
            self._predict_categories(state)

        for spec in template.columns:
            if spec.required and spec.name not in state.errors and is_blank(state.values.get(spec.name)):
                state.fail(spec.name, raw.get(spec.name), f"{spec.name} is required", _REQUIRED_SUGGESTIONS.get(spec.kind))

        errors = sorted(state.errors.values(), key=lambda e: template.column_index(e.column))
        row = TransformedRow(
            row_number=raw.row_number,
            values=state.values,
            transformations=tuple(state.log),
            suggestions=tuple(state.suggestions),
        )
        return RowOutcome(row=row, errors=tuple(errors))

    def _normalize_column(self, state: _RowState, spec: ColumnSpec) -> None:
        name = spec.name
        before = state.raw.get(name)
        error: str | None = None
        hint: str | None = None

        if spec.kind is ValueKind.DATE:
            after, error = normalize_date(before)
            label = DATE_NORMALIZATION
        elif spec.kind is ValueKind.AMOUNT:
            after, error = normalize_amount(before)
            label = AMOUNT_NORMALIZATION
        elif spec.kind is ValueKind.MAJOR_CATEGORY:
            after, error = normalize_major_category(
                before, self.config.major_categories, self.config.major_category_aliases
            )
            label = MAJOR_CATEGORY_NORMALIZATION
            hint = self._major_category_hint
        else:
            vocabulary = self._vocabularies.get(spec.canonical) if spec.canonical else None
            after = normalize_text(before, vocabulary)
            label = TEXT_NORMALIZATION

        if error:
            state.values[name] = before
            state.fail(name, before, error, hint)
            return
        state.values[name] = after
        state.record(name, label, before, after)

    def _apply_flow(self, state: _RowState, detect: bool) -> None:
        before = state.raw.get(FLOW)
        flow, error = normalize_flow(before, self.config.flow_aliases)
        if error:
            state.values[FLOW] = before
            state.fail(FLOW, before, error)
            return
        if flow is None and detect:
            flow = detect_flow(state.raw.get(INCOME), state.raw.get(OUTGOING))
            state.values[FLOW] = flow
            if flow is not None:
                state.record(FLOW, FLOW_AUTO_DETECTION, before, flow)
            return
        state.values[FLOW] = flow
        state.record(FLOW, FLOW_NORMALIZATION, before, flow)

    def _check_amounts(self, state: _RowState) -> None:
        raw_income, raw_outgoing = state.raw.get(INCOME), state.raw.get(OUTGOING)
        has_income, has_outgoing = not is_blank(raw_income), not is_blank(raw_outgoing)
        if not has_income and not has_outgoing:
            state.fail(OUTGOING, raw_outgoing, AMOUNT_REQUIRED, "Fill Income Amount for ENTRADA or Outgoing Amount for SAIDA")
            return

        flow = state.values.get(FLOW) if FLOW not in state.errors else None
        if flow == "ENTRADA":
            if not has_income:
                state.fail(INCOME, raw_income, "Income amount is required for ENTRADA transactions", "Enter a positive number")
            if has_outgoing:
                state.fail(OUTGOING, raw_outgoing, "Outgoing amount should be empty for ENTRADA transactions", "Leave this field empty")
        elif flow == "SAIDA":
            if not has_outgoing:
                state.fail(OUTGOING, raw_outgoing, "Outgoing amount is required for SAIDA transactions", "Enter a positive number")
            if has_income:
                state.fail(INCOME, raw_income, "Income amount should be empty for SAIDA transactions", "Leave this field empty")

    def _predict_categories(self, state: _RowState) -> None:
        blank = [c for c in PREDICTED_COLUMNS if c not in state.errors and is_blank(state.values.get(c))]
        if not blank:
            return
        flow = state.values.get(FLOW) if FLOW not in state.errors else None
        category = state.values.get("Category")
        major = state.values.get("Major Category") if "Major Category" not in state.errors else None
        result = self.predictor.predict(
            state.values.get(DESCRIPTION),
            flow=flow,
            category=category if not is_blank(category) else None,
            major_category=major if not is_blank(major) else None,
        )
        if result is None:
            return

        rule = result.best.rule
        predicted = {
            "Major Category": rule.major_category,
            "Category": rule.category,
            "Sub Category": rule.sub_category,
        }
        alternatives = tuple(p.rule.category for p in result.alternatives)
        for column in blank:
            value = predicted[column]
            state.values[column] = value
            state.record(column, AI_CATEGORIZATION, state.raw.get(column), value)
            state.suggestions.append(
                AISuggestion(
                    row=state.raw.row_number,
                    field=column,
                    suggested_category=value,
                    reasoning=result.best.reasoning,
                    alternatives=alternatives,
                )
            )
        logger.debug("row %s: predicted %s from keyword %r", state.raw.row_number, rule.category, result.best.keyword)
