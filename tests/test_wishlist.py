"""
Tests del contador de favoritos con actualizaciones optimistas.
"""
import asyncio

import httpx
import pytest

from core.storefront_api import StorefrontAPIError, StorefrontClient
from core.wishlist_store import WishlistService, WishlistState


def make_service(handler):
    return WishlistService(StorefrontClient("http://storefront.test/api", transport=httpx.MockTransport(handler)))


class TestWishlistState:
    """Cambios optimistas y reversiones"""

    def test_agregar_no_duplica(self):
        state = WishlistState()
        state.add_optimistic(5)
        state.add_optimistic(5)

        assert state.count == 1
        assert state.wishlisted == [5]

    def test_contador_nunca_negativo(self):
        state = WishlistState()
        state.revert_add(5)
        state.remove_optimistic(9)

        assert state.count == 0

    def test_revertir_eliminacion_restaura_item(self):
        item = {"product_id": 5, "product": {"id": 5}}
        state = WishlistState()
        state.load([item])

        state.remove_optimistic(5)
        assert state.count == 0
        assert state.items == []

        state.revert_remove(5, item)
        assert state.count == 1
        assert state.items == [item]
        assert state.is_wishlisted(5)


class TestWishlistService:
    """Sincronización con la API"""

    def test_refrescar(self):
        def handler(request):
            return httpx.Response(200, json={"wishlists": [{"product_id": 1}, {"product_id": 2}]})

        state = WishlistState()
        asyncio.run(make_service(handler).refresh(state))

        assert state.count == 2
        assert state.wishlisted == [1, 2]

    def test_agregar_falla_y_revierte(self):
        def handler(request):
            return httpx.Response(500, json={"message": "Failed to add to wishlist"})

        state = WishlistState()
        with pytest.raises(StorefrontAPIError):
            asyncio.run(make_service(handler).add(state, 5))

        assert state.count == 0
        assert not state.is_wishlisted(5)

    def test_agregar_existente_que_falla_no_lo_quita(self):
        def handler(request):
            return httpx.Response(500, json={})

        state = WishlistState()
        state.load([{"product_id": 5}])
        with pytest.raises(StorefrontAPIError):
            asyncio.run(make_service(handler).add(state, 5))

        assert state.count == 1
        assert state.is_wishlisted(5)

    def test_quitar_falla_y_restaura(self):
        def handler(request):
            assert request.method == "DELETE"
            assert request.url.path == "/api/wishlist/5"
            return httpx.Response(503, json={"message": "Service unavailable"})

        state = WishlistState()
        state.load([{"product_id": 5}])
        with pytest.raises(StorefrontAPIError):
            asyncio.run(make_service(handler).remove(state, 5))

        assert state.count == 1
        assert state.items == [{"product_id": 5}]
