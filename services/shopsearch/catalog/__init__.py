"""services.shopsearch.catalog — product documents and the category/brand inventory."""

from services.shopsearch.catalog.documents import ProductDocument, Review
from services.shopsearch.catalog.inventory import CategoryInfo, InventoryData, ProductInventory

__all__ = ["ProductDocument", "Review", "CategoryInfo", "InventoryData", "ProductInventory"]
