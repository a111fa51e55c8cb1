"""
services.shopsearch.persona — persona catalog and behavioural profiles.

Usage:
    from services.shopsearch.persona import PersonaStore

    store = PersonaStore()
    store.assign_persona("u1", "outdoor")
    orders = store.get_orders("outdoor")
"""

from __future__ import annotations

from services.shopsearch.persona.store import PersonaStore, fold_preferences, temp_user_id
from services.shopsearch.persona.types import ActionType, Persona, UserAction, UserProfile

__all__ = [
    "PersonaStore",
    "fold_preferences",
    "temp_user_id",
    "ActionType",
    "Persona",
    "UserAction",
    "UserProfile",
]
