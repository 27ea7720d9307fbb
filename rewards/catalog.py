from typing import Iterable, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from .exceptions import InvariantViolationError
from .models import ShopCategory, ShopItem


DEFAULT_PRIZES = [
    {"id": "1", "name": "Cashback", "description": "Get money back",
     "category": "cashback", "value": "RM 10", "probability": 25, "emoji": "💰"},
    {"id": "2", "name": "Grab Voucher", "description": "Food delivery voucher",
     "category": "voucher", "value": "RM 20", "probability": 20, "emoji": "🍔"},
    {"id": "3", "name": "Bonus Points", "description": "Extra reward points",
     "category": "points", "value": "100 pts", "probability": 30, "emoji": "⭐"},
    {"id": "4", "name": "Coffee Voucher", "description": "Starbucks voucher",
     "category": "voucher", "value": "RM 15", "probability": 15, "emoji": "☕"},
    {"id": "5", "name": "Mega Points", "description": "Huge point bonus",
     "category": "points", "value": "500 pts", "probability": 5, "emoji": "💎"},
    {"id": "6", "name": "Shopping Voucher", "description": "Shopee voucher",
     "category": "voucher", "value": "RM 30", "probability": 3, "emoji": "🛍️"},
    {"id": "7", "name": "Try Again", "description": "Better luck next time",
     "category": "points", "value": "5 pts", "probability": 2, "emoji": "🔄"},
]

DEFAULT_SHOP_ITEMS = [
    {"id": "1", "name": "Grab Food Voucher", "description": "RM 20 off on food delivery",
     "category": "vouchers", "price": 150, "original_value": "RM 20",
     "discount_percent": 25, "stock": 50, "emoji": "🍔", "is_popular": True},
    {"id": "2", "name": "Starbucks Voucher", "description": "RM 15 Starbucks gift card",
     "category": "vouchers", "price": 120, "original_value": "RM 15",
     "discount_percent": 20, "stock": 30, "emoji": "☕"},
    {"id": "3", "name": "Shopee Voucher", "description": "RM 30 shopping voucher",
     "category": "vouchers", "price": 250, "original_value": "RM 30",
     "discount_percent": 17, "stock": 25, "emoji": "🛍️", "is_limited": True},
    {"id": "4", "name": "Cashback", "description": "Direct cash to your account",
     "category": "cashback", "price": 100, "original_value": "RM 10",
     "discount_percent": 0, "stock": None, "emoji": "💰"},
    {"id": "5", "name": "Touch n Go eWallet", "description": "RM 25 TnG reload",
     "category": "digital", "price": 200, "original_value": "RM 25",
     "discount_percent": 20, "stock": 40, "emoji": "📱", "is_popular": True},
    {"id": "6", "name": "Cinema Tickets", "description": "2x GSC movie tickets",
     "category": "experiences", "price": 300, "original_value": "RM 40",
     "discount_percent": 25, "stock": 15, "emoji": "🎬", "is_limited": True},
    {"id": "7", "name": "Fitness Class", "description": "1 month gym membership",
     "category": "experiences", "price": 800, "original_value": "RM 120",
     "discount_percent": 33, "stock": 5, "emoji": "💪", "is_limited": True},
    {"id": "8", "name": "Spotify Premium", "description": "3 months subscription",
     "category": "digital", "price": 400, "original_value": "RM 50",
     "discount_percent": 20, "stock": 20, "emoji": "🎵"},
]


def load_shop_catalog(items: Iterable[Union[ShopItem, dict]]) -> list[ShopItem]:
    try:
        loaded = [i if isinstance(i, ShopItem) else ShopItem(**i) for i in items]
    except PydanticValidationError as e:
        raise InvariantViolationError(f"Malformed shop item row: {e}") from e
    seen: set[str] = set()
    for item in loaded:
        if item.id in seen:
            raise InvariantViolationError(f"Duplicate shop item id {item.id!r}")
        seen.add(item.id)
    return loaded


def merge_catalog(
    current: dict[str, ShopItem], catalog: list[ShopItem]
) -> dict[str, ShopItem]:
    """
    Take every field from the session catalog except stock, which keeps the
    persisted (already decremented) count for items seen before.
    """
    merged: dict[str, ShopItem] = {}
    for item in catalog:
        known = current.get(item.id)
        if known is not None and known.stock is not None and item.stock is not None:
            item = item.model_copy(update={"stock": min(known.stock, item.stock)})
        merged[item.id] = item
    return merged


def list_items(
    shop: dict[str, ShopItem],
    category: Optional[ShopCategory] = None,
    include_inactive: bool = False,
) -> list[ShopItem]:
    items = list(shop.values())
    if category:
        items = [i for i in items if i.category == category]
    if not include_inactive:
        items = [i for i in items if i.is_active]
    return items
