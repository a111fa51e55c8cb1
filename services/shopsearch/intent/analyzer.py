"""
CategoryBrandAnalyzer — free text (+ optional persona) -> catalog categories/brands.

Analysis pipeline:
1. Blank query -> [] (no agent call)
2. Agent configured -> prompt with persona context + closed catalog list,
   parse reply with match_catalog_names()
3. Agent missing, failing, timing out, or matching nothing -> two-way
   substring fallback against the catalog
4. Brands only: still empty with a category scope -> first N brands of
   that category

Results never contain a name absent from the inventory.
"""

from __future__ import annotations

import asyncio
import logging

from services.shopsearch.catalog.inventory import ProductInventory
from services.shopsearch.intent.agent import Agent
from services.shopsearch.intent.matching import match_catalog_names, substring_match
from services.shopsearch.persona.store import PersonaStore

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MAX_CATEGORIES = 3
MAX_BRANDS = 5

# Behavioural top-N folded into the prompt
PROMPT_TOP_CATEGORIES = 3
PROMPT_TOP_BRANDS = 5
PROMPT_TOP_KEYWORDS = 5


class CategoryBrandAnalyzer:
    """
    Args:
        inventory: Closed category/brand catalog.
        persona_store: Source of persona and behavioural context.
        agent: Optional assisting agent. None -> keyword matching only.
    """

    def __init__(
        self,
        inventory: ProductInventory,
        persona_store: PersonaStore,
        agent: Agent | None = None,
    ) -> None:
        self._inventory = inventory
        self._store = persona_store
        self._agent = agent

    # ------------------------------------------------------------------
    # Catalog listings
    # ------------------------------------------------------------------

    def get_available_categories(self) -> list[str]:
        return self._inventory.categories()

    def get_available_brands(self, category: str | None = None) -> list[str]:
        return self._inventory.brands(category)

    def get_brands_by_category(self) -> dict[str, list[str]]:
        return self._inventory.brands_by_category()

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    async def analyze_categories(self, query: str | None, persona_id: str | None = None) -> list[str]:
        """Up to 3 catalog categories for the query. Empty means no category filter."""
        if not query or not query.strip():
            return []
        catalog = self.get_available_categories()
        if not catalog:
            logger.warning("No categories in inventory; skipping category analysis")
            return []

        matched: list[str] = []
        if self._agent is not None:
            prompt = self._category_prompt(query, catalog, persona_id)
            matched = await self._ask_agent(prompt, catalog, "categories", MAX_CATEGORIES)

        if not matched:
            matched = substring_match(query, catalog, MAX_CATEGORIES)
            logger.debug("Category fallback for %r -> %s", query, matched)
        return matched

    async def analyze_brands(
        self,
        query: str | None,
        category: str | None = None,
        persona_id: str | None = None,
    ) -> list[str]:
        """Up to 5 catalog brands, scoped to `category` when given."""
        if not query or not query.strip():
            return []
        catalog = self.get_available_brands(category)
        if not catalog:
            logger.warning("No brands in inventory for category %r", category)
            return []

        matched: list[str] = []
        if self._agent is not None:
            prompt = self._brand_prompt(query, category, catalog, persona_id)
            matched = await self._ask_agent(prompt, catalog, "brands", MAX_BRANDS)

        if not matched:
            matched = substring_match(query, catalog, MAX_BRANDS)

        if not matched and category:
            matched = catalog[:MAX_BRANDS]
            logger.debug("Brand fallback for %r in %s -> first %d catalog brands", query, category, len(matched))
        return matched

    # ------------------------------------------------------------------
    # Agent call
    # ------------------------------------------------------------------

    async def _ask_agent(self, prompt: str, catalog: list[str], key: str, limit: int) -> list[str]:
        """Assisted tier. Returns [] on any agent failure; cancellation propagates."""
        try:
            response_text = await self._agent.run(prompt)
        except asyncio.TimeoutError:
            logger.warning("Agent %s analysis timed out", key)
            return []
        except Exception as exc:
            logger.warning("Agent %s analysis failed: %s", key, exc)
            return []

        matched = match_catalog_names(response_text, catalog, key, limit)
        logger.info("Agent %s analysis matched %s", key, matched)
        return matched

    # ------------------------------------------------------------------
    # Prompt builders
    # ------------------------------------------------------------------

    def _persona_context(self, persona_id: str | None) -> str:
        persona = self._store.get_persona(persona_id)
        if persona is None:
            return ""

        lines = [
            "",
            "用戶個人化信息：",
            f"職業/角色：{persona.occupation}",
            f"描述：{persona.description}",
        ]
        if persona.preferred_categories:
            lines.append(f"偏好分類：{'、'.join(persona.preferred_categories)}")
        if persona.preferred_keywords:
            lines.append(f"偏好關鍵字：{'、'.join(persona.preferred_keywords)}")

        profile = self._store.ensure_persona_profile(persona.id)
        if profile is not None:
            top_categories = profile.top_categories(PROMPT_TOP_CATEGORIES)
            top_brands = profile.top_brands(PROMPT_TOP_BRANDS)
            top_keywords = profile.top_keywords(PROMPT_TOP_KEYWORDS)
            if top_categories:
                lines.append(f"用戶行為偏好分類：{'、'.join(top_categories)}")
            if top_brands:
                lines.append(f"用戶行為偏好品牌：{'、'.join(top_brands)}")
            if top_keywords:
                lines.append(f"用戶行為偏好關鍵字：{'、'.join(top_keywords)}")
        return "\n".join(lines)

    def _category_prompt(self, query: str, catalog: list[str], persona_id: str | None) -> str:
        return (
            f"你是商品分類專家。請根據搜尋關鍵字「{query}」，從以下分類中選出最相關的分類"
            f"（最多 {MAX_CATEGORIES} 個）。{self._persona_context(persona_id)}\n\n"
            f"可用分類：{'、'.join(catalog)}\n\n"
            "分析規則：\n"
            "1. 根據關鍵字的實際含義選擇分類\n"
            "2. 如果關鍵字是產品特性（如「防水」、「防曬」），考慮該特性最常見的產品類別\n"
            "3. 如果有用戶個人化信息，優先考慮用戶的偏好分類和關鍵字\n"
            "4. 分類名稱必須完全匹配可用分類列表中的名稱\n"
            "5. 如果無法確定，可以返回空陣列\n\n"
            '請以 JSON 格式回傳：{"categories": ["分類1", "分類2"], "reason": "說明原因"}'
        )

    def _brand_prompt(
        self,
        query: str,
        category: str | None,
        catalog: list[str],
        persona_id: str | None,
    ) -> str:
        scope = f"和分類「{category}」" if category else ""
        return (
            f"根據以下搜尋關鍵字：「{query}」{scope}，從以下品牌中選出最相關的品牌"
            f"（最多 {MAX_BRANDS} 個）。{self._persona_context(persona_id)}\n\n"
            f"可用品牌列表：{', '.join(catalog)}\n\n"
            "分析規則：\n"
            "1. 根據搜尋關鍵字和分類選擇相關品牌\n"
            "2. 如果有用戶個人化信息，優先考慮用戶的偏好品牌和關鍵字\n"
            "3. 品牌名稱必須完全匹配可用品牌列表中的名稱\n"
            "4. 如果無法確定，可以返回空陣列\n\n"
            '請以 JSON 格式回傳，格式如下：{"brands": ["品牌1", "品牌2"], "reason": "說明原因"}'
        )
