"""
Fixed persona catalog and per-persona narrative action histories.

Pure data: PersonaStore turns each ActionTemplate into a timestamped
UserAction relative to "now" when a persona is assigned. Offsets are in
days and decrease along the narrative (browse -> compare -> convert).
"""

from __future__ import annotations

from dataclasses import dataclass

from services.shopsearch.persona.types import ActionType, Persona


@dataclass(frozen=True)
class ProductRef:
    id: str
    name: str
    category: str
    brand: str


@dataclass(frozen=True)
class ActionTemplate:
    """One scripted action. `key` becomes the action id suffix: <persona>-<key>."""

    key: str
    action_type: ActionType
    days_ago: int
    product: ProductRef | None = None
    search_query: str | None = None
    search_result_count: int | None = None


def _search(key: str, days_ago: int, query: str, result_count: int) -> ActionTemplate:
    return ActionTemplate(
        key=key,
        action_type=ActionType.SEARCH,
        days_ago=days_ago,
        search_query=query,
        search_result_count=result_count,
    )


def _product(key: str, kind: ActionType, days_ago: int, product: ProductRef) -> ActionTemplate:
    return ActionTemplate(key=key, action_type=kind, days_ago=days_ago, product=product)


_CLICK = ActionType.CLICK
_CART = ActionType.ADD_TO_CART
_CHECKOUT = ActionType.CHECKOUT


# ---------------------------------------------------------------------------
# Personas
# ---------------------------------------------------------------------------

PERSONAS: tuple[Persona, ...] = (
    Persona(
        id="chef",
        occupation="廚師",
        description="我是一位廚師，我喜歡美食，最近看了黑白大廚，很喜歡",
        preferred_categories=("美食", "廚具", "調味料", "食材"),
        preferred_keywords=("專業", "高品質", "料理"),
    ),
    Persona(
        id="tycoon",
        occupation="鋼鐵人",
        description="我是鋼鐵人，服務都要最好的",
        preferred_categories=("奢侈品", "高級服務", "精品"),
        preferred_keywords=("頂級", "奢華", "尊貴", "高品質"),
    ),
    Persona(
        id="commuter",
        occupation="上班族",
        description="女性上班族，想要「不卡粉、可當妝前乳」的防曬",
        preferred_categories=("美妝", "防曬", "保養品"),
        preferred_keywords=("不卡粉", "妝前乳", "防曬", "輕薄"),
    ),
    Persona(
        id="outdoor",
        occupation="水上運動員",
        description="戶外運動族，重視「防汗、防水、長效」",
        preferred_categories=("運動用品", "防曬", "戶外裝備"),
        preferred_keywords=("防汗", "防水", "長效", "戶外"),
    ),
    Persona(
        id="sensitive_skin",
        occupation="演員",
        description="敏感肌族群，關鍵字偏向「物理性、防敏、無酒精」",
        preferred_categories=("美妝", "保養品", "防曬"),
        preferred_keywords=("物理性", "防敏", "無酒精", "溫和"),
    ),
    Persona(
        id="headphone_seeker",
        occupation="工程師",
        description="耳機控，科技控",
        preferred_categories=("電子產品", "耳機"),
        preferred_keywords=("降噪", "通話清晰", "通勤", "會議", "ANC", "麥克風", "商務"),
    ),
)

# Appended after persona keywords by get_trending_keywords()
DEFAULT_TRENDING_KEYWORDS: tuple[str, ...] = (
    "防曬", "耳機", "保濕", "運動", "旅遊", "優惠券",
)


# ---------------------------------------------------------------------------
# Products referenced by the histories
# ---------------------------------------------------------------------------

_MULTI_COOKER = ProductRef("16", "多功能料理機", "家電", "廚神")
_RICE_COOKER = ProductRef("7", "超強智能電飯煲", "家電", "飯煲大王")
_BUFFET_VOUCHER = ProductRef("56", "長榮飯店白黑大廚自助餐優惠券", "餐飲", "長榮飯店")

_IPHONE = ProductRef("61", "蘋果 iPhone 16 Pro 智慧型手機", "電子產品", "蘋果")
_PROJECTOR = ProductRef("33", "4K 超高清投影機", "電子產品", "影視")
_HOTEL_VOUCHER = ProductRef("54", "長榮飯店 3日住宿優惠券", "旅遊", "長榮飯店")
_UPGRADE_VOUCHER = ProductRef("57", "長榮航空國際航班升等優惠券", "旅遊", "長榮航空")

_COMMUTER_SUNSCREEN = ProductRef("97", "通勤族清爽防曬凝乳 SPF50+", "美妝", "日常守護")
_TINTED_PRIMER = ProductRef("98", "潤色妝前防曬乳 SPF30", "美妝", "素顏光")
_BUSINESS_HEADSET = ProductRef("107", "商務降噪藍牙耳機組", "電子產品", "辦公聲學")

_WATERPROOF_SUNSCREEN = ProductRef("99", "戶外運動極效防水防曬乳 SPF50+ PA++++", "美妝", "戶外盾牌")
_BEACH_SPRAY = ProductRef("104", "海邊戲水專用全身防曬噴霧 SPF50", "美妝", "海灘守護")
_WATER_BOTTLE = ProductRef("36", "輕量運動水壺", "運動用品", "活力水")
_YOGA_MAT = ProductRef("37", "可調節瑜伽墊", "運動用品", "健身派")

_MINERAL_SUNSCREEN = ProductRef("101", "敏感肌物理性防曬霜 SPF30", "美妝", "溫和安心")
_REPAIR_SUNSCREEN = ProductRef("105", "醫美修復型防曬乳 SPF30", "美妝", "修復之光")
_HYDRATING_MASK = ProductRef("5", "超級保濕面膜", "美妝", "保濕女王")
_DEEP_MASK = ProductRef("11", "極致保濕面膜", "美妝", "水潤女神")

_WIRELESS_EARBUDS = ProductRef("15", "無線藍牙耳機", "電子產品", "音樂達人")
_ANC_EARBUDS = ProductRef("32", "無線降噪耳機", "電子產品", "靜音")
_MEETING_HEADSET = ProductRef("110", "遠端工作專用會議耳機", "電子產品", "遠距聲線")
_HYBRID_ANC = ProductRef("111", "Hybrid ANC 音樂與會議兩用耳機", "電子產品", "雙模聲學")
_COMMUTE_OVER_EAR = ProductRef("108", "通勤用主動降噪耳罩式耳機", "電子產品", "通勤聲學")
_MULTIPOINT_HEADSET = ProductRef("109", "多裝置切換商務藍牙耳機", "電子產品", "會議好夥伴")
_SPORT_EARBUDS = ProductRef("112", "輕量運動藍牙耳機（具通話降噪）", "電子產品", "動能聲學")


# ---------------------------------------------------------------------------
# Narrative histories
# ---------------------------------------------------------------------------

PERSONA_HISTORIES: dict[str, tuple[ActionTemplate, ...]] = {
    "chef": (
        _search("search-1", 10, "料理機", 15),
        _product("click-1", _CLICK, 9, _MULTI_COOKER),
        _product("cart-1", _CART, 9, _MULTI_COOKER),
        _search("search-2", 8, "電飯煲", 8),
        _product("checkout-1", _CHECKOUT, 8, _MULTI_COOKER),
        _product("click-2", _CLICK, 7, _RICE_COOKER),
        _product("checkout-2", _CHECKOUT, 6, _RICE_COOKER),
        _search("search-3", 5, "黑白大廚", 3),
        _product("checkout-3", _CHECKOUT, 4, _BUFFET_VOUCHER),
    ),
    "tycoon": (
        _search("search-1", 12, "頂級手機", 12),
        _product("checkout-1", _CHECKOUT, 10, _IPHONE),
        _search("search-2", 8, "奢華旅遊", 8),
        _product("checkout-2", _CHECKOUT, 7, _PROJECTOR),
        _product("checkout-3", _CHECKOUT, 5, _HOTEL_VOUCHER),
        _product("checkout-4", _CHECKOUT, 3, _UPGRADE_VOUCHER),
    ),
    "commuter": (
        _search("search-1", 14, "防曬 不卡粉", 10),
        _product("click-1", _CLICK, 12, _COMMUTER_SUNSCREEN),
        _product("checkout-1", _CHECKOUT, 11, _COMMUTER_SUNSCREEN),
        _search("search-2", 10, "妝前乳 防曬", 6),
        _product("checkout-2", _CHECKOUT, 9, _TINTED_PRIMER),
        _search("search-3", 5, "無線耳機 降噪", 15),
        _product("click-2", _CLICK, 4, _BUSINESS_HEADSET),
        _product("checkout-3", _CHECKOUT, 3, _BUSINESS_HEADSET),
    ),
    "outdoor": (
        _search("search-1", 15, "防曬 防水", 12),
        _product("checkout-1", _CHECKOUT, 12, _WATERPROOF_SUNSCREEN),
        _search("search-2", 10, "運動 防曬 長效", 8),
        _product("checkout-2", _CHECKOUT, 8, _BEACH_SPRAY),
        _product("checkout-3", _CHECKOUT, 6, _WATER_BOTTLE),
        _product("checkout-4", _CHECKOUT, 4, _YOGA_MAT),
    ),
    "sensitive_skin": (
        _search("search-1", 12, "物理性 防曬", 5),
        _product("checkout-1", _CHECKOUT, 10, _MINERAL_SUNSCREEN),
        _search("search-2", 8, "無酒精 防敏", 8),
        _product("checkout-2", _CHECKOUT, 7, _REPAIR_SUNSCREEN),
        _search("search-3", 5, "敏感肌 保養", 10),
        _product("checkout-3", _CHECKOUT, 4, _HYDRATING_MASK),
        _product("checkout-4", _CHECKOUT, 2, _DEEP_MASK),
    ),
    "headphone_seeker": (
        _search("search-1", 15, "無線耳機", 20),
        _product("click-1", _CLICK, 14, _WIRELESS_EARBUDS),
        _search("search-2", 12, "降噪耳機", 12),
        _product("click-2", _CLICK, 11, _ANC_EARBUDS),
        _search("search-3", 9, "通話清晰 耳機", 8),
        _product("click-3", _CLICK, 8, _MEETING_HEADSET),
        _product("click-4", _CLICK, 7, _HYBRID_ANC),
        _product("click-5", _CLICK, 6, _BUSINESS_HEADSET),
        _product("cart-1", _CART, 6, _BUSINESS_HEADSET),
        _product("checkout-1", _CHECKOUT, 5, _BUSINESS_HEADSET),
        _search("search-4", 4, "通勤 降噪 耳機", 6),
        _product("click-6", _CLICK, 3, _COMMUTE_OVER_EAR),
        _search("search-5", 2, "會議 麥克風 耳機", 5),
        _product("click-7", _CLICK, 1, _MULTIPOINT_HEADSET),
        _product("click-8", _CLICK, 1, _SPORT_EARBUDS),
    ),
}
