"""
services.shopsearch.intent — query -> catalog category/brand resolution.

Usage:
    from services.shopsearch.intent import CategoryBrandAnalyzer

    analyzer = CategoryBrandAnalyzer(inventory, persona_store, agent=build_agent())
    categories = await analyzer.analyze_categories("防曬 防水", persona_id="outdoor")
"""

from __future__ import annotations

from services.shopsearch.intent.agent import Agent, AnthropicAgent, build_agent
from services.shopsearch.intent.analyzer import MAX_BRANDS, MAX_CATEGORIES, CategoryBrandAnalyzer
from services.shopsearch.intent.matching import match_catalog_names, substring_match

__all__ = [
    "Agent",
    "AnthropicAgent",
    "build_agent",
    "CategoryBrandAnalyzer",
    "MAX_BRANDS",
    "MAX_CATEGORIES",
    "match_catalog_names",
    "substring_match",
]
