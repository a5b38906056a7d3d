"""
Endpoints de favoritos del usuario.

Los favoritos viven en la API de la tienda; cada petición carga el estado
actual, aplica el cambio de forma optimista y lo revierte si la API falla.
"""
import logging
from fastapi import APIRouter, Depends
from core.dependencies import get_user_token, get_wishlist_service
from core.storefront_api import StorefrontAPIError
from core.wishlist_store import WishlistService, WishlistState
from routes.carts import api_error

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/wishlist",
    tags=["wishlist"]
)


def format_wishlist_response(state: WishlistState) -> dict:
    return {
        "count": state.count,
        "wishlisted": state.wishlisted,
        "items": state.items
    }


async def load_wishlist(wishlist_service: WishlistService, token: str) -> WishlistState:
    state = WishlistState()
    try:
        await wishlist_service.refresh(state, token=token)
    except StorefrontAPIError as e:
        raise api_error(503, e.message, "SERVICE_UNAVAILABLE")
    return state


# ==================== ENDPOINTS ====================

@router.get("")
async def get_wishlist(
    token: str = Depends(get_user_token),
    wishlist_service: WishlistService = Depends(get_wishlist_service)
):
    """
    Obtener favoritos y contador del usuario autenticado.
    """
    state = await load_wishlist(wishlist_service, token)

    return {
        "success": True,
        "status_code": 200,
        "message": "Favoritos obtenidos exitosamente",
        "data": format_wishlist_response(state)
    }


@router.post("/{product_id}", status_code=201)
async def add_to_wishlist(
    product_id: int,
    token: str = Depends(get_user_token),
    wishlist_service: WishlistService = Depends(get_wishlist_service)
):
    """
    Agregar producto a favoritos.

    - Si ya estaba en favoritos el contador no cambia
    """
    state = await load_wishlist(wishlist_service, token)

    try:
        await wishlist_service.add(state, product_id, token=token)
    except StorefrontAPIError as e:
        logger.warning(f"No se pudo agregar el producto {product_id} a favoritos: {e.message}")
        raise api_error(502, e.message, "WISHLIST_UPDATE_FAILED")

    return {
        "success": True,
        "status_code": 201,
        "message": "Producto agregado a favoritos",
        "data": format_wishlist_response(state)
    }


@router.delete("/{product_id}")
async def remove_from_wishlist(
    product_id: int,
    token: str = Depends(get_user_token),
    wishlist_service: WishlistService = Depends(get_wishlist_service)
):
    """
    Quitar producto de favoritos.
    """
    state = await load_wishlist(wishlist_service, token)
    if not state.is_wishlisted(product_id):
        raise api_error(404, "Producto no encontrado en favoritos", "ITEM_NOT_FOUND")

    try:
        await wishlist_service.remove(state, product_id, token=token)
    except StorefrontAPIError as e:
        logger.warning(f"No se pudo quitar el producto {product_id} de favoritos: {e.message}")
        raise api_error(502, e.message, "WISHLIST_UPDATE_FAILED")

    return {
        "success": True,
        "status_code": 200,
        "message": "Producto eliminado de favoritos",
        "data": format_wishlist_response(state)
    }
