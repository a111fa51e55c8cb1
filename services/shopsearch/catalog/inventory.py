"""
Product inventory feed: the closed list of categories and brands.

Loaded from JSON once per process on first access (double-checked lock).
A missing or unreadable file yields an empty inventory and a warning; the
analyzers then return empty suggestions instead of failing.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_INVENTORY_PATH = Path(__file__).parent / "data" / "product_inventory.json"


class CategoryInfo(BaseModel):
    name: str
    product_count: int = 0
    brand_count: int = 0


class InventoryData(BaseModel):
    categories: list[CategoryInfo] = Field(default_factory=list)
    brands_by_category: dict[str, list[str]] = Field(default_factory=dict)


class ProductInventory:
    """Lazy, thread-safe view over the inventory document."""

    def __init__(self, path: str | Path | None = None, *, data: InventoryData | None = None) -> None:
        self._path = Path(path) if path else DEFAULT_INVENTORY_PATH
        self._data = data
        self._lock = threading.Lock()

    def _load(self) -> InventoryData:
        if self._data is not None:
            return self._data
        with self._lock:
            if self._data is not None:
                return self._data
            try:
                raw = self._path.read_text(encoding="utf-8")
                data = InventoryData.model_validate_json(raw)
                logger.info(
                    "Loaded product inventory from %s: %d categories",
                    self._path, len(data.categories),
                )
            except FileNotFoundError:
                logger.warning("Product inventory not found at %s, using empty inventory", self._path)
                data = InventoryData()
            except (OSError, ValidationError) as exc:
                logger.warning("Product inventory at %s unreadable: %s", self._path, exc)
                data = InventoryData()
            self._data = data
            return data

    @property
    def data(self) -> InventoryData:
        return self._load()

    def categories(self) -> list[str]:
        """Category names in file order."""
        return [c.name for c in self._load().categories if c.name]

    def brands(self, category: str | None = None) -> list[str]:
        """Brands for one category, or every brand de-duplicated in file order."""
        brands_by_category = self._load().brands_by_category
        if category:
            return list(brands_by_category.get(category, []))
        seen: dict[str, None] = {}
        for brands in brands_by_category.values():
            for brand in brands:
                seen.setdefault(brand, None)
        return list(seen)

    def brands_by_category(self) -> dict[str, list[str]]:
        return {k: list(v) for k, v in self._load().brands_by_category.items()}
