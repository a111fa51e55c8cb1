"""
Persona and user-profile endpoints.

GET  /personas                       — persona catalog
GET  /personas/{persona_id}          — one persona
GET  /personas/{persona_id}/orders   — scripted checkout history (newest first)
GET  /personas/{persona_id}/events   — full scripted history (newest first)
PUT  /users/{user_id}/persona        — assign a persona (resets history)
GET  /users/{user_id}/profile        — behavioural profile
POST /users/{user_id}/actions        — record a live interaction
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from services.shopsearch.persona.store import new_action_id
from services.shopsearch.persona.types import ActionType, Persona, UserAction

logger = logging.getLogger(__name__)

router = APIRouter(tags=["personas"])


def _persona_dict(persona: Persona) -> dict[str, Any]:
    return {
        "id": persona.id,
        "occupation": persona.occupation,
        "description": persona.description,
        "preferredCategories": list(persona.preferred_categories),
        "preferredKeywords": list(persona.preferred_keywords),
    }


def _require_persona(request: Request, persona_id: str) -> Persona:
    persona = request.app.state.persona_store.get_persona(persona_id)
    if persona is None:
        raise HTTPException(status_code=404, detail=f"Unknown persona: {persona_id}")
    return persona


# ---------------------------------------------------------------------------
# Persona catalog
# ---------------------------------------------------------------------------

@router.get("/personas")
async def list_personas(request: Request) -> dict:
    personas = request.app.state.persona_store.list_personas()
    return {
        "success": True,
        "data": {"personas": [_persona_dict(p) for p in personas]},
        "requestId": request.state.request_id,
    }


@router.get("/personas/{persona_id}")
async def get_persona(persona_id: str, request: Request) -> dict:
    persona = _require_persona(request, persona_id)
    return {
        "success": True,
        "data": _persona_dict(persona),
        "requestId": request.state.request_id,
    }


@router.get("/personas/{persona_id}/orders")
async def get_persona_orders(persona_id: str, request: Request) -> dict:
    _require_persona(request, persona_id)
    orders = request.app.state.persona_store.get_orders(persona_id)
    return {
        "success": True,
        "data": {"orders": [o.to_dict() for o in orders], "count": len(orders)},
        "requestId": request.state.request_id,
    }


@router.get("/personas/{persona_id}/events")
async def get_persona_events(persona_id: str, request: Request) -> dict:
    _require_persona(request, persona_id)
    events = request.app.state.persona_store.get_events(persona_id)
    return {
        "success": True,
        "data": {"events": [e.to_dict() for e in events], "count": len(events)},
        "requestId": request.state.request_id,
    }


# ---------------------------------------------------------------------------
# User profiles
# ---------------------------------------------------------------------------

class AssignPersonaBody(BaseModel):
    personaId: str = Field(..., min_length=1, max_length=64)


class RecordActionBody(BaseModel):
    actionType: ActionType
    personaId: str | None = None
    productId: str | None = None
    productName: str | None = None
    category: str | None = None
    brand: str | None = None
    searchQuery: str | None = Field(default=None, max_length=500)
    searchResultCount: int | None = Field(default=None, ge=0)
    context: dict[str, Any] = Field(default_factory=dict)


@router.put("/users/{user_id}/persona")
async def assign_persona(user_id: str, body: AssignPersonaBody, request: Request) -> dict:
    _require_persona(request, body.personaId)
    store = request.app.state.persona_store
    store.assign_persona(user_id, body.personaId)
    return {
        "success": True,
        "data": store.get_user_profile(user_id).to_dict(),
        "requestId": request.state.request_id,
    }


@router.get("/users/{user_id}/profile")
async def get_user_profile(user_id: str, request: Request) -> dict:
    store = request.app.state.persona_store
    profile = store.get_user_profile(user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail=f"No profile for user: {user_id}")
    data = profile.to_dict()
    data["recommendedCategories"] = store.get_recommended_categories(user_id)
    return {
        "success": True,
        "data": data,
        "requestId": request.state.request_id,
    }


@router.post("/users/{user_id}/actions", status_code=201)
async def record_action(user_id: str, body: RecordActionBody, request: Request) -> dict:
    if body.personaId:
        _require_persona(request, body.personaId)
    action = UserAction(
        id=new_action_id(),
        user_id=user_id,
        persona_id=body.personaId,
        action_type=body.actionType,
        timestamp=datetime.now(timezone.utc),
        product_id=body.productId,
        product_name=body.productName,
        category=body.category,
        brand=body.brand,
        search_query=body.searchQuery,
        search_result_count=body.searchResultCount,
        context=body.context,
    )
    request.app.state.persona_store.record_action(action)
    return {
        "success": True,
        "data": action.to_dict(),
        "requestId": request.state.request_id,
    }
