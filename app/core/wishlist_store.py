"""
Contador de favoritos con actualizaciones optimistas.

La interfaz marca el producto como favorito antes de que responda la API y
revierte el cambio si la petición falla.
"""
from typing import Any, Dict, List, Optional

from core.storefront_api import StorefrontAPIError, StorefrontClient


class WishlistState:
    """Estado de favoritos del usuario"""

    def __init__(self, count: int = 0, wishlisted: Optional[List[int]] = None, items: Optional[List[Dict[str, Any]]] = None):
        self.count = max(0, count)
        self.wishlisted: List[int] = list(wishlisted or [])
        self.items: List[Dict[str, Any]] = list(items or [])

    def load(self, items: List[Dict[str, Any]]) -> None:
        """Reemplazar el estado con la lista obtenida de la API"""
        self.items = list(items)
        self.wishlisted = [item["product_id"] for item in items]
        self.count = len(self.items)

    def add_optimistic(self, product_id: int) -> None:
        if product_id not in self.wishlisted:
            self.wishlisted.append(product_id)
            self.count += 1

    def revert_add(self, product_id: int) -> None:
        self.wishlisted = [pid for pid in self.wishlisted if pid != product_id]
        self.count = max(0, self.count - 1)

    def remove_optimistic(self, product_id: int) -> None:
        self.wishlisted = [pid for pid in self.wishlisted if pid != product_id]
        self.items = [item for item in self.items if item.get("product_id") != product_id]
        self.count = max(0, self.count - 1)

    def revert_remove(self, product_id: int, item: Optional[Dict[str, Any]] = None) -> None:
        if product_id not in self.wishlisted:
            self.wishlisted.append(product_id)
        if item:
            self.items.append(item)
        self.count += 1

    def is_wishlisted(self, product_id: int) -> bool:
        return product_id in self.wishlisted


class WishlistService:
    """
    Sincroniza el WishlistState con la API de favoritos.

    Los favoritos pertenecen al usuario: cada llamada reenvía su token.
    """

    def __init__(self, client: StorefrontClient):
        self.client = client

    async def refresh(self, state: WishlistState, token: Optional[str] = None) -> None:
        body = await self.client.get("/wishlist", default_error="Failed to fetch wishlist", token=token)
        state.load(body.get("wishlists") or [])

    async def add(self, state: WishlistState, product_id: int, token: Optional[str] = None) -> None:
        """Agregar a favoritos; revierte el contador si la API falla"""
        already_wishlisted = state.is_wishlisted(product_id)
        state.add_optimistic(product_id)
        try:
            await self.client.post(
                "/wishlist",
                json={"product_id": product_id},
                default_error="Failed to add to wishlist",
                token=token
            )
        except StorefrontAPIError:
            if not already_wishlisted:
                state.revert_add(product_id)
            raise

    async def remove(self, state: WishlistState, product_id: int, token: Optional[str] = None) -> None:
        """Quitar de favoritos; restaura el item si la API falla"""
        removed = next((item for item in state.items if item.get("product_id") == product_id), None)
        state.remove_optimistic(product_id)
        try:
            await self.client.request(
                "DELETE",
                f"/wishlist/{product_id}",
                default_error="Failed to remove from wishlist",
                token=token
            )
        except StorefrontAPIError:
            state.revert_remove(product_id, removed)
            raise
