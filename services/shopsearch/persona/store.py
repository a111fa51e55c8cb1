"""
PersonaStore — persona catalog, per-user behavioural profiles, and the
behaviour simulator that seeds a persona's scripted history.

Concurrency:
- The persona catalog is built once in __init__ and only read afterwards.
- Profile mutations hold a per-user threading.Lock. Locks for different
  user ids are independent; the registry lock is held only to fetch or
  create a user's lock.

Frequency maps are a fold over recent_actions. Eviction subtracts the
evicted action's contributions, so replaying the retained actions through
_apply() always reproduces the maps.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta, timezone

from services.shopsearch.persona.fixtures import (
    DEFAULT_TRENDING_KEYWORDS,
    PERSONA_HISTORIES,
    PERSONAS,
    ActionTemplate,
)
from services.shopsearch.persona.types import (
    DEFAULT_ACTION_CAPACITY,
    PRODUCT_ACTIONS,
    ActionType,
    Persona,
    UserAction,
    UserProfile,
)

logger = logging.getLogger(__name__)

TEMP_USER_PREFIX = "temp_"
RECOMMENDED_BEHAVIOURAL_CATEGORIES = 5
PERSONALIZED_RECENT_ACTIONS = 10


def temp_user_id(persona_id: str) -> str:
    """Synthetic user id backing get_orders/get_events for a persona."""
    return f"{TEMP_USER_PREFIX}{persona_id}"


def new_action_id() -> str:
    return str(uuid.uuid4())


def search_tokens(query: str | None) -> list[str]:
    """Whitespace tokenizer for search keywords. Duplicates are kept."""
    if not query:
        return []
    return [token for token in query.split() if token]


def _bump(counts: dict[str, int], key: str | None, delta: int) -> None:
    if not key:
        return
    value = counts.get(key, 0) + delta
    if value > 0:
        counts[key] = value
    else:
        counts.pop(key, None)


def fold_preferences(
    actions: Iterable[UserAction],
) -> tuple[dict[str, int], dict[str, int], dict[str, int]]:
    """Pure fold of the frequency update rule over an action sequence.

    Returns (categories, brands, keywords).
    """
    categories: dict[str, int] = {}
    brands: dict[str, int] = {}
    keywords: dict[str, int] = {}
    for action in actions:
        if action.action_type in PRODUCT_ACTIONS:
            _bump(categories, action.category, 1)
            _bump(brands, action.brand, 1)
        elif action.action_type == ActionType.SEARCH:
            for token in search_tokens(action.search_query):
                _bump(keywords, token, 1)
    return categories, brands, keywords


class PersonaStore:
    """
    In-process store for personas and user profiles.

    Construct once at startup and inject; nothing here is module-global.
    """

    def __init__(
        self,
        personas: Sequence[Persona] = PERSONAS,
        histories: dict[str, tuple[ActionTemplate, ...]] | None = None,
        *,
        capacity: int = DEFAULT_ACTION_CAPACITY,
    ) -> None:
        self._personas: dict[str, Persona] = {p.id: p for p in personas}
        self._histories = PERSONA_HISTORIES if histories is None else histories
        self._capacity = capacity
        self._profiles: dict[str, UserProfile] = {}
        self._user_locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Persona catalog
    # ------------------------------------------------------------------

    def get_persona(self, persona_id: str | None) -> Persona | None:
        if not persona_id:
            return None
        return self._personas.get(persona_id)

    def list_personas(self) -> list[Persona]:
        return list(self._personas.values())

    def get_trending_keywords(self) -> list[str]:
        """Every persona's preferred keywords, then the defaults, de-duplicated."""
        seen: dict[str, None] = {}
        for persona in self._personas.values():
            for keyword in persona.preferred_keywords:
                seen.setdefault(keyword, None)
        for keyword in DEFAULT_TRENDING_KEYWORDS:
            seen.setdefault(keyword, None)
        return list(seen)

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def _lock_for(self, user_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._user_locks.get(user_id)
            if lock is None:
                lock = threading.Lock()
                self._user_locks[user_id] = lock
            return lock

    def get_user_profile(self, user_id: str) -> UserProfile | None:
        return self._profiles.get(user_id)

    def assign_persona(self, user_id: str, persona_id: str) -> None:
        """Reset the user's profile to the persona and replay its scripted history.

        Unknown persona ids are logged and ignored.
        """
        persona = self._personas.get(persona_id)
        if persona is None:
            logger.warning("assign_persona: unknown persona %r for user %s", persona_id, user_id)
            return

        with self._lock_for(user_id):
            profile = self._reset_profile(user_id, persona)

        logger.info(
            "Assigned persona %s to user %s (%d scripted actions)",
            persona_id, user_id, len(profile.recent_actions),
        )

    def _reset_profile(self, user_id: str, persona: Persona) -> UserProfile:
        """Replace the user's profile with a freshly seeded one. Caller holds the user lock."""
        profile = UserProfile(user_id=user_id, persona=persona)
        for action in self._materialize_history(user_id, persona):
            self._append(profile, action)
        self._profiles[user_id] = profile
        return profile

    def record_action(self, action: UserAction) -> None:
        """Append a live action, evicting the oldest beyond capacity."""
        if action.persona_id and action.persona_id not in self._personas:
            logger.warning(
                "record_action: unknown persona %r on action %s, ignoring",
                action.persona_id, action.id,
            )
            return

        with self._lock_for(action.user_id):
            profile = self._profiles.get(action.user_id)
            if profile is None:
                profile = UserProfile(
                    user_id=action.user_id,
                    persona=self._personas.get(action.persona_id or ""),
                )
                self._profiles[action.user_id] = profile
            self._append(profile, action)

    def _append(self, profile: UserProfile, action: UserAction) -> None:
        profile.recent_actions.append(action)
        self._apply(profile, action, 1)
        while len(profile.recent_actions) > self._capacity:
            evicted = profile.recent_actions.popleft()
            self._apply(profile, evicted, -1)
        profile.last_updated = datetime.now(timezone.utc)

    @staticmethod
    def _apply(profile: UserProfile, action: UserAction, delta: int) -> None:
        if action.action_type in PRODUCT_ACTIONS:
            _bump(profile.category_preferences, action.category, delta)
            _bump(profile.brand_preferences, action.brand, delta)
        elif action.action_type == ActionType.SEARCH:
            for token in search_tokens(action.search_query):
                _bump(profile.keyword_preferences, token, delta)

    def _materialize_history(self, user_id: str, persona: Persona) -> list[UserAction]:
        now = datetime.now(timezone.utc)
        actions: list[UserAction] = []
        # Seconds offset keeps same-day templates in narrative order
        for index, template in enumerate(self._histories.get(persona.id, ())):
            product = template.product
            actions.append(
                UserAction(
                    id=f"{persona.id}-{template.key}",
                    user_id=user_id,
                    persona_id=persona.id,
                    action_type=template.action_type,
                    timestamp=now - timedelta(days=template.days_ago) + timedelta(seconds=index),
                    product_id=product.id if product else None,
                    product_name=product.name if product else None,
                    category=product.category if product else None,
                    brand=product.brand if product else None,
                    search_query=template.search_query,
                    search_result_count=template.search_result_count,
                    context={"source": "persona_fixture"},
                )
            )
        return actions

    # ------------------------------------------------------------------
    # Persona-scoped history (backed by temp_<persona_id>)
    # ------------------------------------------------------------------

    def ensure_persona_profile(self, persona_id: str) -> UserProfile | None:
        """Lazily materialize the temp_<persona_id> profile."""
        persona = self._personas.get(persona_id)
        if persona is None:
            return None
        user_id = temp_user_id(persona_id)
        profile = self._profiles.get(user_id)
        if profile is not None:
            return profile
        with self._lock_for(user_id):
            profile = self._profiles.get(user_id)
            if profile is None:
                profile = self._reset_profile(user_id, persona)
        return profile

    def get_events(self, persona_id: str) -> list[UserAction]:
        profile = self.ensure_persona_profile(persona_id)
        if profile is None:
            return []
        return sorted(profile.recent_actions, key=lambda a: a.timestamp, reverse=True)

    def get_orders(self, persona_id: str) -> list[UserAction]:
        return [a for a in self.get_events(persona_id) if a.action_type == ActionType.CHECKOUT]

    # ------------------------------------------------------------------
    # Personalized vector input
    # ------------------------------------------------------------------

    def build_personalized_vector_input(
        self,
        persona_id: str | None,
        selected_order_ids: Sequence[str] | None = None,
        selected_event_ids: Sequence[str] | None = None,
        base_text: str | None = None,
    ) -> str | None:
        """
        Assemble embedding input text for a persona plus selected history.

        Order: occupation + description, each selected order's name and
        category, each selected event's name, category and search query,
        then base_text. Returns None when nothing non-blank was assembled.
        """
        parts: list[str] = []
        persona = self.get_persona(persona_id)
        if persona is not None:
            parts.extend([persona.occupation, persona.description])

            if selected_order_ids:
                wanted = set(selected_order_ids)
                for order in self.get_orders(persona.id):
                    if order.id in wanted:
                        parts.extend([order.product_name or "", order.category or ""])

            if selected_event_ids:
                wanted = set(selected_event_ids)
                for event in self.get_events(persona.id):
                    if event.id in wanted:
                        parts.extend([
                            event.product_name or "",
                            event.category or "",
                            event.search_query or "",
                        ])
        elif persona_id:
            logger.warning("build_personalized_vector_input: unknown persona %r", persona_id)

        if base_text:
            parts.append(base_text)

        text = " ".join(p for p in parts if p and p.strip())
        return text or None

    def build_profile_vector_input(self, user_id: str, base_text: str | None = None) -> str | None:
        """Embedding input from a user's own profile: persona description,
        the 10 most recent product actions newest first, then base_text."""
        profile = self._profiles.get(user_id)
        parts: list[str] = []
        if profile is not None:
            if profile.persona is not None:
                parts.append(profile.persona.description)
            product_actions = sorted(
                (a for a in profile.recent_actions if a.action_type in PRODUCT_ACTIONS),
                key=lambda a: a.timestamp,
                reverse=True,
            )
            for action in product_actions[:PERSONALIZED_RECENT_ACTIONS]:
                parts.extend([action.product_name or "", action.category or ""])
        if base_text:
            parts.append(base_text)
        text = " ".join(p for p in parts if p and p.strip())
        return text or None

    def cache_preference_vector(self, user_id: str, vector: list[float]) -> None:
        with self._lock_for(user_id):
            profile = self._profiles.get(user_id)
            if profile is not None:
                profile.preference_vector = vector

    def get_recommended_categories(self, user_id: str) -> list[str]:
        """Persona's declared categories, then top behavioural categories."""
        profile = self._profiles.get(user_id)
        if profile is None:
            return []
        seen: dict[str, None] = {}
        if profile.persona is not None:
            for category in profile.persona.preferred_categories:
                seen.setdefault(category, None)
        for category in profile.top_categories(RECOMMENDED_BEHAVIOURAL_CATEGORIES):
            seen.setdefault(category, None)
        return list(seen)
