"""
Dependencias de FastAPI.

La identidad se obtiene del JWT (cookie HttpOnly o Bearer token). Sin token
válido la petición usa el carrito de invitado; nunca se rechaza.

Los servicios (storage, clientes de la API de la tienda) se crean una sola vez
en el lifespan de la app y se leen desde app.state.
"""
from fastapi import Depends, HTTPException, Request, status
from typing import Optional, Dict
from core.cart_store import CartStore
from core.coupon_service import CouponService, CouponSequencer
from core.order_service import OrderService
from core.security import decode_token, get_access_token_from_request
from core.shipping_service import ShippingService
from core.wishlist_store import WishlistService


async def get_optional_identity(request: Request) -> Optional[Dict[str, str]]:
    """
    Obtener la identidad del usuario si está autenticado, sino retornar None.

    Uso:
        @router.get("/cart")
        async def get_cart(identity: Optional[dict] = Depends(get_optional_identity)):
            # identity es None para invitados
            ...
    """
    token = get_access_token_from_request(request)
    if not token:
        return None

    payload = decode_token(token)
    if not payload or payload.get("type", "access") != "access":
        return None

    user_id = payload.get("sub")
    if not user_id:
        return None

    return {"id": str(user_id)}


async def get_cart_store(
    request: Request,
    identity: Optional[Dict[str, str]] = Depends(get_optional_identity)
) -> CartStore:
    """
    CartStore cargado con el carrito de la identidad de la petición.
    """
    return CartStore(request.app.state.cart_storage, identity=identity)


async def get_user_token(
    request: Request,
    identity: Optional[Dict[str, str]] = Depends(get_optional_identity)
) -> str:
    """
    Token del usuario autenticado, para reenviarlo a la API de la tienda.

    Uso:
        @router.get("/wishlist")
        async def get_wishlist(token: str = Depends(get_user_token)):
            ...
    """
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "success": False,
                "status_code": 401,
                "message": "Token de autenticación requerido",
                "error": "AUTHENTICATION_REQUIRED"
            },
            headers={"WWW-Authenticate": "Bearer"}
        )

    return get_access_token_from_request(request)


def get_coupon_service(request: Request) -> CouponService:
    return request.app.state.coupon_service


def get_coupon_sequencer(request: Request) -> CouponSequencer:
    return request.app.state.coupon_sequencer


def get_order_service(request: Request) -> OrderService:
    return request.app.state.order_service


def get_shipping_service(request: Request) -> ShippingService:
    return request.app.state.shipping_service


def get_wishlist_service(request: Request) -> WishlistService:
    return request.app.state.wishlist_service
