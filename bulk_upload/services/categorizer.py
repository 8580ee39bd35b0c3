from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from ..models.config_models import CategoryRule
from .normalizers import strip_accents

"""Keyword-based category prediction for transactions.

Prediction runs an ordered list of scoring strategies over the transaction
description and merges their candidates with one deterministic rule:

    highest score wins; ties go to the strategy declared first, and within a
    strategy to the rule declared first.

Candidates that contradict what the row already says (a known flow, or a
category the user filled in) are dropped before ranking. The predictor is
built once from configuration and is read-only afterwards.
"""

__all__ = [
    "Prediction",
    "PredictionResult",
    "ScoringStrategy",
    "KeywordRuleStrategy",
    "CategoryNameStrategy",
    "CategoryPredictor",
    "normalize_description",
]


def normalize_description(text: str) -> str:
    """Lower-case, strip accents, punctuation -> spaces, collapse whitespace."""
    plain = strip_accents(text.lower())
    plain = re.sub(r"[^\w\s]", " ", plain)
    return re.sub(r"\s+", " ", plain).strip()


def _word_pattern(phrase: str) -> re.Pattern[str]:
    return re.compile(r"\b" + re.escape(normalize_description(phrase)) + r"\b")


@dataclass(frozen=True)
class Prediction:
    rule: CategoryRule
    score: float
    keyword: str  # text that matched in the description
    strategy: str
    strategy_order: int = 0
    rule_order: int = 0

    @property
    def reasoning(self) -> str:
        return f"Matched keyword '{self.keyword}' in description ({self.strategy})"


@dataclass(frozen=True)
class PredictionResult:
    best: Prediction
    alternatives: tuple[Prediction, ...] = ()


class ScoringStrategy:
    """Base class: yields scored candidates for a normalized description."""

    name = "strategy"

    def candidates(self, description: str) -> list[Prediction]:
        raise NotImplementedError


class KeywordRuleStrategy(ScoringStrategy):
    """Merchant / keyword substrings from the configured rule table.

    Score is priority / 10, so a priority 10 rule scores 1.0.
    """

    name = "keyword rule"

    def __init__(self, rules: Sequence[CategoryRule]) -> None:
        self._compiled = [
            (order, rule, [(kw, _word_pattern(kw)) for kw in rule.keywords])
            for order, rule in enumerate(rules)
        ]

    def candidates(self, description: str) -> list[Prediction]:
        found: list[Prediction] = []
        for order, rule, patterns in self._compiled:
            for keyword, pattern in patterns:
                if pattern.search(description):
                    found.append(
                        Prediction(
                            rule=rule,
                            score=min(rule.priority, 10) / 10,
                            keyword=keyword,
                            strategy=self.name,
                            rule_order=order,
                        )
                    )
                    break
        return found


class CategoryNameStrategy(ScoringStrategy):
    """The description names a known category or sub-category outright."""

    name = "category name"
    SCORE = 0.6

    def __init__(self, rules: Sequence[CategoryRule]) -> None:
        self._compiled = [
            (order, rule, [(n, _word_pattern(n)) for n in (rule.sub_category, rule.category)])
            for order, rule in enumerate(rules)
        ]

    def candidates(self, description: str) -> list[Prediction]:
        found: list[Prediction] = []
        for order, rule, patterns in self._compiled:
            for name, pattern in patterns:
                if pattern.search(description):
                    found.append(
                        Prediction(rule=rule, score=self.SCORE, keyword=name.lower(), strategy=self.name, rule_order=order)
                    )
                    break
        return found


class CategoryPredictor:
    def __init__(
        self,
        rules: Sequence[CategoryRule],
        strategies: Sequence[ScoringStrategy] | None = None,
    ) -> None:
        self.rules = tuple(rules)
        self.strategies: tuple[ScoringStrategy, ...] = tuple(
            strategies
            if strategies is not None
            else (KeywordRuleStrategy(self.rules), CategoryNameStrategy(self.rules))
        )

    def predict(
        self,
        description: str | None,
        flow: str | None = None,
        category: str | None = None,
        major_category: str | None = None,
    ) -> PredictionResult | None:
        """Rank candidates for a description; None when nothing matches.

        A known flow, category or major category drops candidates from other
        branches of the category tree.
        """
        if not description:
            return None
        text = normalize_description(description)
        if not text:
            return None

        candidates: list[Prediction] = []
        for strategy_order, strategy in enumerate(self.strategies):
            for p in strategy.candidates(text):
                if flow and p.rule.flow != flow:
                    continue
                if category and p.rule.category.casefold() != category.casefold():
                    continue
                if major_category and p.rule.major_category != major_category:
                    continue
                candidates.append(
                    Prediction(
                        rule=p.rule,
                        score=p.score,
                        keyword=p.keyword,
                        strategy=p.strategy,
                        strategy_order=strategy_order,
                        rule_order=p.rule_order,
                    )
                )
        if not candidates:
            return None

        ranked = sorted(candidates, key=lambda p: (-p.score, p.strategy_order, p.rule_order))
        best = ranked[0]
        alternatives: list[Prediction] = []
        seen = {best.rule.category}
        for p in ranked[1:]:
            if p.rule.category not in seen:
                seen.add(p.rule.category)
                alternatives.append(p)
        return PredictionResult(best=best, alternatives=tuple(alternatives))
