"""
Cart store: line items kept across the session, logged in or not.

Each product appears at most once; adding it again increases the quantity.
A line's quantity never exceeds the last stock figure seen for that
product. Every accepted mutation is written to storage before it becomes
visible; a rejected one (validation, stock, storage failure) changes
nothing.
"""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from client.results import StoreResult
from client.storage import CART_KEY, KeyValueStorage
from shared.logging import get_logger

log = get_logger(__name__)

INSUFFICIENT_STOCK_MESSAGE = "Stok yetersiz!"
INVALID_QUANTITY_MESSAGE = "Geçersiz miktar"
NOT_IN_CART_MESSAGE = "Ürün sepette bulunamadı"
PERSIST_FAILED_MESSAGE = "Sepet kaydedilemedi"


class Product(BaseModel):
    """The product fields the cart needs, as returned by the catalog API."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    id: str
    name: str
    price: Decimal = Field(ge=0)
    stock: int = Field(ge=0)


class CartItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    product_id: str = Field(alias="productId")
    name: str
    price: Decimal = Field(ge=0)  # TRY
    quantity: int = Field(gt=0)
    stock: int = Field(ge=0)

    @model_validator(mode="after")
    def _within_stock(self) -> "CartItem":
        if self.quantity > self.stock:
            raise ValueError("quantity exceeds stock")
        return self

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


CartListener = Callable[[tuple[CartItem, ...]], None]


class CartStore:
    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage
        self._listeners: list[CartListener] = []
        self._items: list[CartItem] = self._load()

    # ── Persistence ──────────────────────────────────────────────────────────

    def _discard(self, reason: str) -> list[CartItem]:
        log.warning("cart_storage_corrupt", reason=reason)
        try:
            self._storage.remove_item(CART_KEY)
        except OSError as e:
            log.error("cart_storage_clear_failed", error=str(e))
        return []

    def _load(self) -> list[CartItem]:
        raw = self._storage.get_item(CART_KEY)
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except ValueError:
            return self._discard("malformed_json")
        if not isinstance(data, list):
            return self._discard("not_a_list")
        try:
            items = [CartItem.model_validate(entry) for entry in data]
        except PydanticValidationError:
            return self._discard("invalid_item")
        if len({item.product_id for item in items}) != len(items):
            return self._discard("duplicate_product")
        return items

    def _commit(self, items: list[CartItem], message: str) -> StoreResult:
        payload = json.dumps(
            [item.model_dump(mode="json", by_alias=True) for item in items],
            ensure_ascii=False,
        )
        try:
            self._storage.set_item(CART_KEY, payload)
        except OSError as e:
            log.error("cart_persist_failed", error=str(e))
            return StoreResult(False, PERSIST_FAILED_MESSAGE, "storage_error")
        self._items = items
        self._notify()
        return StoreResult(True, message)

    # ── Listeners ────────────────────────────────────────────────────────────

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """Call *listener* with the new items after every change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.items
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                log.error(
                    "cart_listener_failed", error=str(e), error_type=type(e).__name__
                )

    # ── Reads ────────────────────────────────────────────────────────────────

    @property
    def items(self) -> tuple[CartItem, ...]:
        return tuple(self._items)

    def _find(self, product_id: Any) -> Optional[CartItem]:
        key = str(product_id)
        return next((item for item in self._items if item.product_id == key), None)

    def quantity_of(self, product_id: Any) -> int:
        item = self._find(product_id)
        return item.quantity if item else 0

    def total_price(self) -> Decimal:
        return sum((item.line_total for item in self._items), Decimal("0"))

    def total_items(self) -> int:
        return sum(item.quantity for item in self._items)

    def order_lines(self) -> list[dict]:
        """Line items in the shape the order endpoint expects."""
        return [
            {
                "productId": item.product_id,
                "quantity": item.quantity,
                "price": str(item.price),
                "name": item.name,
            }
            for item in self._items
        ]

    # ── Mutations ────────────────────────────────────────────────────────────

    def add_item(
        self, product: Union[Product, Mapping[str, Any]], quantity: int = 1
    ) -> StoreResult:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            return StoreResult(False, INVALID_QUANTITY_MESSAGE, "validation_error")
        try:
            product = (
                product
                if isinstance(product, Product)
                else Product.model_validate(dict(product))
            )
        except (PydanticValidationError, TypeError, ValueError):
            return StoreResult(False, "Geçersiz ürün", "validation_error")

        existing = self._find(product.id)
        new_quantity = quantity + (existing.quantity if existing else 0)
        if new_quantity > product.stock:
            return StoreResult(False, INSUFFICIENT_STOCK_MESSAGE, "insufficient_stock")

        line = CartItem(
            product_id=product.id,
            name=product.name,
            price=product.price,
            quantity=new_quantity,
            stock=product.stock,
        )
        if existing:
            items = [line if item is existing else item for item in self._items]
            return self._commit(items, "Ürün miktarı güncellendi")
        return self._commit([*self._items, line], "Ürün sepete eklendi")

    def update_quantity(self, product_id: Any, quantity: int) -> StoreResult:
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            return StoreResult(False, INVALID_QUANTITY_MESSAGE, "validation_error")
        if quantity <= 0:
            return self.remove_item(product_id)

        existing = self._find(product_id)
        if existing is None:
            return StoreResult(False, NOT_IN_CART_MESSAGE, "not_found")
        if quantity > existing.stock:
            return StoreResult(False, INSUFFICIENT_STOCK_MESSAGE, "insufficient_stock")
        if quantity == existing.quantity:
            return StoreResult(True)

        updated = existing.model_copy(update={"quantity": quantity})
        items = [updated if item is existing else item for item in self._items]
        return self._commit(items, "Ürün miktarı güncellendi")

    def remove_item(self, product_id: Any) -> StoreResult:
        existing = self._find(product_id)
        if existing is None:
            return StoreResult(True)
        items = [item for item in self._items if item is not existing]
        return self._commit(items, "Ürün sepetten kaldırıldı")

    def clear(self) -> StoreResult:
        """Empty the cart and wipe its persisted copy."""
        try:
            self._storage.remove_item(CART_KEY)
        except OSError as e:
            log.error("cart_clear_failed", error=str(e))
            return StoreResult(False, PERSIST_FAILED_MESSAGE, "storage_error")
        had_items = bool(self._items)
        self._items = []
        if had_items:
            self._notify()
        return StoreResult(True, "Sepet temizlendi")
