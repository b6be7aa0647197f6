"""
The Category Table: an ordered list of activity categories and their base
points. Declaration order is significant, it breaks ranking ties.
"""

import json
import logging
from typing import Any, Iterable, List, Optional, Sequence

from pydantic import ValidationError

from .pydantic_models import CategoryRule

DEFAULT_CATEGORY_RULES = [
    CategoryRule(name="Energy Saving", basePoints=20),
    CategoryRule(name="Transportation", basePoints=15),
    CategoryRule(name="Recycling", basePoints=10),
    CategoryRule(name="Water Conservation", basePoints=12),
    CategoryRule(name="Food Waste Reduction", basePoints=8),
    CategoryRule(name="Other", basePoints=5),
]

DURATION_BONUS_CAP = 30


class CategoryTable:
    """Ordered lookup over CategoryRule entries."""

    def __init__(self, rules: Iterable[CategoryRule]):
        self.rules: List[CategoryRule] = list(rules)
        if not self.rules:
            raise ValueError("Category table needs at least one category")
        names = [rule.name for rule in self.rules]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate category names in table: {names}")
        self._by_name = {rule.name: rule for rule in self.rules}
        self._order = {rule.name: index for index, rule in enumerate(self.rules)}

    def __contains__(self, name: Any) -> bool:
        return name in self._by_name

    def __iter__(self):
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    @property
    def names(self) -> List[str]:
        return [rule.name for rule in self.rules]

    @property
    def lowest_tier(self) -> CategoryRule:
        """The cheapest category; the last declared one wins a tie."""
        lowest = self.rules[0]
        for rule in self.rules[1:]:
            if rule.basePoints <= lowest.basePoints:
                lowest = rule
        return lowest

    def base_points(self, name: Optional[str]) -> int:
        """Base points for a category, lowest tier for absent or unknown names."""
        rule = self._by_name.get(name) if name else None
        return (rule or self.lowest_tier).basePoints

    def group_name(self, name: Optional[str]) -> str:
        """The name a record's points are grouped under."""
        return name if name else self.lowest_tier.name

    def order_index(self, name: str) -> int:
        """Declaration position; names outside the table sort after it."""
        return self._order.get(name, len(self.rules))

    def compute_points(self, name: Optional[str], duration_minutes: int) -> int:
        """Base points plus the duration bonus, capped at DURATION_BONUS_CAP."""
        bonus = min(max(duration_minutes, 0), DURATION_BONUS_CAP)
        return self.base_points(name) + bonus


def parse_category_table(raw: Optional[str]) -> CategoryTable:
    """
    Build a table from a JSON list of {"name", "basePoints"} objects.
    Empty or invalid input yields the default table.
    """
    if not raw:
        return CategoryTable(DEFAULT_CATEGORY_RULES)
    try:
        entries: Sequence[Any] = json.loads(raw)
        if not isinstance(entries, list):
            raise ValueError("category table must be a JSON list")
        return CategoryTable(CategoryRule.model_validate(entry) for entry in entries)
    except (ValueError, ValidationError) as e:
        logging.error(f"Invalid category table configuration, using defaults: {e}")
        return CategoryTable(DEFAULT_CATEGORY_RULES)


DEFAULT_CATEGORY_TABLE = CategoryTable(DEFAULT_CATEGORY_RULES)
