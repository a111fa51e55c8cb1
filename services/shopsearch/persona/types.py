"""
Persona, UserAction and UserProfile dataclasses.

Personas are immutable archetypes seeded at startup. UserAction is an
immutable event carrying a product snapshot captured at action time.
UserProfile is the only mutable record; PersonaStore owns every mutation.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

DEFAULT_ACTION_CAPACITY = 100


class ActionType(str, Enum):
    VIEW = "view"
    SEARCH = "search"
    CLICK = "click"
    ADD_TO_CART = "add_to_cart"
    CHECKOUT = "checkout"


# Action kinds that carry a product snapshot and feed category/brand counters
PRODUCT_ACTIONS = frozenset({
    ActionType.VIEW,
    ActionType.CLICK,
    ActionType.ADD_TO_CART,
    ActionType.CHECKOUT,
})


@dataclass(frozen=True)
class Persona:
    """A named shopper archetype with fixed preferences."""

    id: str
    """Stable slug, e.g. 'outdoor', 'headphone_seeker'."""

    occupation: str
    """Short occupation label shown in prompts and vector input."""

    description: str
    """First-person free text describing the shopper."""

    preferred_categories: tuple[str, ...] = ()
    """Declared category preferences, most important first."""

    preferred_keywords: tuple[str, ...] = ()
    """Declared keyword preferences, most important first."""


@dataclass(frozen=True)
class UserAction:
    """One interaction event. Never mutated after creation."""

    id: str
    user_id: str
    action_type: ActionType
    timestamp: datetime
    persona_id: str | None = None
    product_id: str | None = None
    product_name: str | None = None
    category: str | None = None
    brand: str | None = None
    search_query: str | None = None
    search_result_count: int | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "personaId": self.persona_id,
            "actionType": self.action_type.value,
            "productId": self.product_id,
            "productName": self.product_name,
            "category": self.category,
            "brand": self.brand,
            "searchQuery": self.search_query,
            "searchResultCount": self.search_result_count,
            "timestamp": self.timestamp.isoformat(),
            "context": dict(self.context),
        }


def _ranked_keys(counts: dict[str, int], n: int) -> list[str]:
    # sorted() is stable, so equal counts keep first-seen order
    return [key for key, _ in sorted(counts.items(), key=lambda kv: kv[1], reverse=True)[:n]]


@dataclass
class UserProfile:
    """
    Per-user behavioural profile.

    The three frequency maps are always a fold over recent_actions; the
    store removes an evicted action's contributions when the FIFO drops it.
    """

    user_id: str
    persona: Persona | None = None
    recent_actions: deque[UserAction] = field(default_factory=deque)
    category_preferences: dict[str, int] = field(default_factory=dict)
    brand_preferences: dict[str, int] = field(default_factory=dict)
    keyword_preferences: dict[str, int] = field(default_factory=dict)
    preference_vector: list[float] | None = None
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def top_categories(self, n: int) -> list[str]:
        return _ranked_keys(self.category_preferences, n)

    def top_brands(self, n: int) -> list[str]:
        return _ranked_keys(self.brand_preferences, n)

    def top_keywords(self, n: int) -> list[str]:
        return _ranked_keys(self.keyword_preferences, n)

    def to_dict(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "personaId": self.persona.id if self.persona else None,
            "recentActions": [a.to_dict() for a in self.recent_actions],
            "categoryPreferences": dict(self.category_preferences),
            "brandPreferences": dict(self.brand_preferences),
            "keywordPreferences": dict(self.keyword_preferences),
            "hasPreferenceVector": self.preference_vector is not None,
            "lastUpdated": self.last_updated.isoformat(),
        }
