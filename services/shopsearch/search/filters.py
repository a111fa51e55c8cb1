"""
Category/brand filter construction.

One SearchFilter renders two ways:
- `expression`: OData-style string (`category eq 'X' and (brand eq 'A' or ...)`)
  with single quotes doubled, used in logs and by string-filter indexes.
- `to_qdrant()`: the same predicate as a qdrant Filter.

AND across filter kinds, OR within a multi-valued kind. A non-empty
`categories` list supersedes the scalar `category`.
"""

from __future__ import annotations

from dataclasses import dataclass

from qdrant_client.models import FieldCondition, Filter, MatchAny, MatchValue


def escape_literal(value: str) -> str:
    return value.replace("'", "''")


def _clause(field_name: str, values: list[str]) -> str:
    terms = [f"{field_name} eq '{escape_literal(v)}'" for v in values]
    if len(terms) == 1:
        return terms[0]
    return "(" + " or ".join(terms) + ")"


def _condition(field_name: str, values: list[str]) -> FieldCondition:
    if len(values) == 1:
        return FieldCondition(key=field_name, match=MatchValue(value=values[0]))
    return FieldCondition(key=field_name, match=MatchAny(any=values))


@dataclass(frozen=True)
class SearchFilter:
    category: str | None = None
    categories: tuple[str, ...] = ()
    brands: tuple[str, ...] = ()

    @property
    def active_categories(self) -> list[str]:
        if self.categories:
            return [c for c in self.categories if c]
        return [self.category] if self.category else []

    @property
    def active_brands(self) -> list[str]:
        return [b for b in self.brands if b]

    @property
    def is_empty(self) -> bool:
        return not self.active_categories and not self.active_brands

    @property
    def expression(self) -> str:
        """Filter string, empty when no clause applies."""
        clauses = []
        if self.active_categories:
            clauses.append(_clause("category", self.active_categories))
        if self.active_brands:
            clauses.append(_clause("brand", self.active_brands))
        return " and ".join(clauses)

    def conditions(self) -> list[FieldCondition]:
        must = []
        if self.active_categories:
            must.append(_condition("category", self.active_categories))
        if self.active_brands:
            must.append(_condition("brand", self.active_brands))
        return must

    def to_qdrant(self) -> Filter | None:
        must = self.conditions()
        return Filter(must=must) if must else None
