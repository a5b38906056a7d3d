"""
Confirmación de órdenes contra la API de la tienda.

El carrito solo se vacía cuando la API confirma la orden; eso lo hace quien
llama a place_order.
"""
import logging
from typing import Any, Dict, Optional

from core.cart_store import CartStore
from core.shipping_service import calculate_shipping_cost
from core.storefront_api import StorefrontAPIError, StorefrontClient
from schemas.carts import ShippingAddress, ShippingCharge

logger = logging.getLogger(__name__)


class OrderPlacementError(StorefrontAPIError):
    """La API no confirmó la orden"""
    pass


def calculate_checkout_totals(
    store: CartStore,
    shipping: Optional[ShippingCharge],
    tax_rate: float = 0.0
) -> Dict[str, float]:
    """
    Calcular totales del checkout.

    total = subtotal + impuestos + envío - descuento (nunca negativo).
    Un cupón con free_shipping deja el envío en 0.
    """
    subtotal = store.total_price
    coupon = store.coupon

    shipping_cost = calculate_shipping_cost(shipping, subtotal)
    if coupon and coupon.free_shipping:
        shipping_cost = 0.0

    tax = round(subtotal * tax_rate, 2)
    total = max(0.0, subtotal + tax + shipping_cost - store.discount)

    return {
        "subtotal": round(subtotal, 2),
        "tax": tax,
        "shipping_cost": round(shipping_cost, 2),
        "discount": round(store.discount, 2),
        "total": round(total, 2)
    }


def build_order_payload(
    store: CartStore,
    shipping: ShippingCharge,
    address: ShippingAddress,
    payment_method: str = "cash_on_delivery",
    payment_intent_id: Optional[str] = None,
    tax_rate: float = 0.0
) -> Dict[str, Any]:
    """
    Construir el payload de la orden a partir del carrito.
    """
    totals = calculate_checkout_totals(store, shipping, tax_rate)
    coupon = store.coupon

    return {
        "items": [
            {
                "product_id": item.product.id,
                "product_name": item.product.product_name,
                "product_color": item.selected_color,
                "product_size": item.selected_size,
                "quantity": item.quantity,
                "price": item.price
            }
            for item in store.items
        ],
        "shipping_address": address.model_dump(),
        "shipping_charge_id": shipping.id,
        "shipping_cost": totals["shipping_cost"],
        "shipping_region": shipping.region or "Default",
        "payment_method": payment_method,
        "payment_intent_id": payment_intent_id,
        "coupon_id": coupon.id if coupon else None,
        "coupon_code": coupon.code if coupon else None,
        "discount": store.discount,
        "tax": totals["tax"],
        "total": totals["total"]
    }


class OrderService:
    """Envía órdenes a la API de la tienda"""

    def __init__(self, client: StorefrontClient):
        self.client = client

    async def place_order(self, payload: Dict[str, Any]) -> str:
        """
        Confirmar una orden.

        Returns:
            ID de la orden creada

        Raises:
            OrderPlacementError: si la API rechaza la orden o no responde
        """
        try:
            body = await self.client.post("/place-order", json=payload, default_error="Failed to place order")
        except StorefrontAPIError as e:
            raise OrderPlacementError(e.message, status_code=e.status_code) from e

        order_id = body.get("order_id")
        if body.get("status") not in (200, 201) or order_id is None:
            raise OrderPlacementError(body.get("message") or "Failed to place order")

        logger.info(f"✅ Orden {order_id} creada ({len(payload.get('items', []))} items)")
        return str(order_id)
