"""
Endpoints del carrito de compra.

El carrito se guarda por identidad (usuario autenticado o invitado) en el
storage configurado; cupones, envíos y órdenes se validan contra la API de
la tienda.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
from core.cart_store import CartStore
from core.config import settings
from core.coupon_service import CartEmptyError, CouponService, CouponSequencer, CouponVerificationError
from core.dependencies import (
    get_cart_store,
    get_coupon_sequencer,
    get_coupon_service,
    get_order_service,
    get_shipping_service
)
from core.order_service import OrderPlacementError, OrderService, build_order_payload, calculate_checkout_totals
from core.shipping_service import ShippingService, get_shipping_info, meets_minimum_order
from core.storefront_api import StorefrontAPIError
from schemas.carts import (
    CartItemCreate,
    CartItemUpdate,
    CartSummary,
    CheckoutRequest,
    CouponApplyRequest
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/cart",
    tags=["cart"]
)


def api_error(status_code: int, message: str, error: str) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={
            "success": False,
            "status_code": status_code,
            "message": message,
            "error": error
        }
    )


def format_cart_response(store: CartStore) -> dict:
    """
    Formatear el carrito para la respuesta.
    Incluye subtotal por línea y los totales derivados.
    """
    coupon = store.coupon
    return {
        "cart_key": store.storage_key,
        "items": [
            {
                "product_id": item.product.id,
                "product": item.product.model_dump(),
                "quantity": item.quantity,
                "selected_color": item.selected_color,
                "selected_size": item.selected_size,
                "price": item.price,
                "subtotal": round(item.price * item.quantity, 2)
            }
            for item in store.items
        ],
        "total_items": store.total_items,
        "total_price": round(store.total_price, 2),
        "coupon": coupon.model_dump() if coupon else None,
        "discount": round(store.discount, 2),
        "final_total": round(store.final_total, 2)
    }


# ==================== ENDPOINTS ====================

@router.get("")
async def get_cart(store: CartStore = Depends(get_cart_store)):
    """
    Obtener el carrito de la identidad actual.

    - Usuarios autenticados ven su propio carrito
    - Sin token se usa el carrito de invitado
    """
    return {
        "success": True,
        "status_code": 200,
        "message": "Carrito obtenido exitosamente",
        "data": format_cart_response(store)
    }


@router.get("/summary")
async def get_cart_summary(store: CartStore = Depends(get_cart_store)):
    """
    Obtener resumen del carrito (solo totales).

    Útil para mostrar el badge del carrito sin cargar todos los items.
    """
    summary = CartSummary(
        total_items=store.total_items,
        total_price=round(store.total_price, 2),
        discount=round(store.discount, 2),
        final_total=round(store.final_total, 2)
    )
    return {
        "success": True,
        "status_code": 200,
        "message": "Resumen del carrito",
        "data": summary.model_dump()
    }


@router.post("/items", status_code=201)
async def add_item_to_cart(
    item_data: CartItemCreate,
    store: CartStore = Depends(get_cart_store)
):
    """
    Agregar producto al carrito.

    - Si la misma variante (color/talla) ya existe, incrementa la cantidad
    - El precio unitario queda fijo al momento de agregar
    """
    product = item_data.product
    if product.unit_price() is None:
        raise api_error(400, "El producto no tiene precio", "PRODUCT_WITHOUT_PRICE")

    existed = any(
        item.matches(product.id, item_data.selected_color, item_data.selected_size)
        for item in store.items
    )

    store.add_item(
        product,
        item_data.quantity,
        item_data.selected_color,
        item_data.selected_size
    )

    message = "Cantidad actualizada en el carrito" if existed else "Producto agregado al carrito"
    return {
        "success": True,
        "status_code": 201,
        "message": message,
        "data": format_cart_response(store)
    }


@router.put("/items/{product_id}")
async def update_cart_item(
    product_id: int,
    item_data: CartItemUpdate,
    store: CartStore = Depends(get_cart_store)
):
    """
    Actualizar cantidad de una línea del carrito.

    - Una cantidad menor a 1 elimina la línea
    """
    exists = any(
        item.matches(product_id, item_data.selected_color, item_data.selected_size)
        for item in store.items
    )
    if not exists:
        raise api_error(404, "Producto no encontrado en el carrito", "ITEM_NOT_FOUND")

    store.update_quantity(
        product_id,
        item_data.selected_color,
        item_data.selected_size,
        item_data.quantity
    )

    return {
        "success": True,
        "status_code": 200,
        "message": "Cantidad actualizada" if item_data.quantity >= 1 else "Producto eliminado del carrito",
        "data": format_cart_response(store)
    }


@router.delete("/items/{product_id}")
async def remove_cart_item(
    product_id: int,
    selected_color: Optional[str] = Query(None),
    selected_size: Optional[str] = Query(None),
    store: CartStore = Depends(get_cart_store)
):
    """
    Eliminar una línea del carrito (producto + color + talla).
    """
    exists = any(item.matches(product_id, selected_color, selected_size) for item in store.items)
    if not exists:
        raise api_error(404, "Producto no encontrado en el carrito", "ITEM_NOT_FOUND")

    store.remove_item(product_id, selected_color, selected_size)

    return {
        "success": True,
        "status_code": 200,
        "message": "Producto eliminado del carrito",
        "data": format_cart_response(store)
    }


@router.delete("/clear")
async def clear_cart(store: CartStore = Depends(get_cart_store)):
    """
    Vaciar el carrito completamente (incluye el cupón).
    """
    store.clear()

    return {
        "success": True,
        "status_code": 200,
        "message": "Carrito vaciado exitosamente",
        "data": format_cart_response(store)
    }


# ==================== CUPONES ====================

@router.post("/coupon")
async def apply_coupon(
    coupon_data: CouponApplyRequest,
    store: CartStore = Depends(get_cart_store),
    coupon_service: CouponService = Depends(get_coupon_service),
    sequencer: CouponSequencer = Depends(get_coupon_sequencer)
):
    """
    Verificar un cupón con la API de la tienda y aplicarlo al carrito.

    - Reemplaza cualquier cupón aplicado antes
    - Si llega otro intento para el mismo carrito mientras se verifica,
      solo el más reciente se aplica
    """
    if not store.items:
        raise api_error(400, "El carrito está vacío", "CART_EMPTY")

    subtotal = store.total_price
    product_ids = store.product_ids()

    try:
        coupon = await sequencer.apply(
            store,
            lambda: coupon_service.verify(coupon_data.code, subtotal, product_ids)
        )
    except CouponVerificationError as e:
        raise api_error(400, e.message, "COUPON_INVALID")
    except CartEmptyError:
        raise api_error(400, "El carrito está vacío", "CART_EMPTY")

    if coupon is None:
        raise api_error(409, "Se recibió otro cupón mientras se verificaba este", "COUPON_SUPERSEDED")

    return {
        "success": True,
        "status_code": 200,
        "message": f"Cupón {coupon.code} aplicado",
        "data": format_cart_response(store)
    }


@router.delete("/coupon")
async def remove_coupon(store: CartStore = Depends(get_cart_store)):
    """
    Quitar el cupón aplicado.
    """
    store.remove_coupon()

    return {
        "success": True,
        "status_code": 200,
        "message": "Cupón eliminado",
        "data": format_cart_response(store)
    }


# ==================== ENVÍO Y CHECKOUT ====================

@router.get("/shipping")
async def get_cart_shipping(
    shipping_charge_id: Optional[int] = Query(None),
    store: CartStore = Depends(get_cart_store),
    shipping_service: ShippingService = Depends(get_shipping_service)
):
    """
    Tarifas de envío disponibles y totales del checkout.

    - Sin shipping_charge_id se usa la primera tarifa activa
    """
    try:
        charges = await shipping_service.fetch_charges()
    except StorefrontAPIError as e:
        raise api_error(503, e.message, "SERVICE_UNAVAILABLE")

    selected = None
    if shipping_charge_id is not None:
        selected = next((c for c in charges if c.id == shipping_charge_id), None)
        if selected is None:
            raise api_error(404, "Tarifa de envío no encontrada", "SHIPPING_NOT_FOUND")
    elif charges:
        selected = charges[0]

    coupon = store.coupon
    free_shipping = bool(coupon and coupon.free_shipping)

    return {
        "success": True,
        "status_code": 200,
        "message": "Opciones de envío",
        "data": {
            "charges": [charge.model_dump() for charge in charges],
            "shipping_info": get_shipping_info(selected, store.total_price, free_shipping),
            "totals": calculate_checkout_totals(store, selected, settings.CHECKOUT_TAX_RATE)
        }
    }


@router.post("/checkout", status_code=201)
async def checkout(
    checkout_data: CheckoutRequest,
    store: CartStore = Depends(get_cart_store),
    shipping_service: ShippingService = Depends(get_shipping_service),
    order_service: OrderService = Depends(get_order_service)
):
    """
    Confirmar la compra del carrito.

    - Valida la tarifa de envío y el pedido mínimo
    - Envía la orden a la API de la tienda
    - Vacía el carrito solo si la orden se creó
    """
    if not store.items:
        raise api_error(400, "El carrito está vacío", "CART_EMPTY")

    try:
        shipping = await shipping_service.get_charge(checkout_data.shipping_charge_id)
    except StorefrontAPIError as e:
        raise api_error(503, e.message, "SERVICE_UNAVAILABLE")

    if shipping is None:
        raise api_error(404, "Tarifa de envío no encontrada", "SHIPPING_NOT_FOUND")

    if not meets_minimum_order(shipping, store.total_price):
        raise api_error(
            400,
            f"El pedido mínimo para {shipping.region} es ${shipping.min_order_value}",
            "MINIMUM_ORDER_NOT_MET"
        )

    payload = build_order_payload(
        store,
        shipping,
        checkout_data.shipping_address,
        payment_method=checkout_data.payment_method,
        payment_intent_id=checkout_data.payment_intent_id,
        tax_rate=settings.CHECKOUT_TAX_RATE
    )

    try:
        order_id = await order_service.place_order(payload)
    except OrderPlacementError as e:
        logger.error(f"Error al crear la orden para '{store.storage_key}': {e.message}")
        raise api_error(502, e.message, "ORDER_FAILED")

    store.clear()

    return {
        "success": True,
        "status_code": 201,
        "message": "Orden creada exitosamente",
        "data": {
            "order_id": order_id,
            "total": payload["total"]
        }
    }
