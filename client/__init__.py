"""Client-side storefront state: session, cart, theme and the API facade."""

from client.api import StorefrontClient
from client.cart_store import CartItem, CartStore, Product
from client.results import ApiResult, StoreResult
from client.session_store import Session, SessionStore, SessionUser
from client.storage import JsonFileStorage, MemoryStorage, purge_legacy_keys
from client.theme_store import ThemeStore

__all__ = [
    "ApiResult",
    "CartItem",
    "CartStore",
    "JsonFileStorage",
    "MemoryStorage",
    "Product",
    "Session",
    "SessionStore",
    "SessionUser",
    "StoreResult",
    "StorefrontClient",
    "ThemeStore",
    "purge_legacy_keys",
]
