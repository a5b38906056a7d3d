"""
Tarifas de envío: consulta a la API de la tienda y cálculo del costo.
"""
import logging
from typing import Dict, List, Optional

from pydantic import ValidationError

from core.storefront_api import StorefrontClient
from schemas.carts import ShippingCharge

logger = logging.getLogger(__name__)


class ShippingService:
    """Obtiene las tarifas de envío activas"""

    def __init__(self, client: StorefrontClient):
        self.client = client

    async def fetch_charges(self) -> List[ShippingCharge]:
        """
        Obtener tarifas de envío.
        Solo retorna las tarifas activas.
        """
        body = await self.client.get("/shipping-charges", default_error="Failed to fetch shipping charges")

        charges = []
        for raw in body.get("data") or []:
            try:
                charge = ShippingCharge.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"Tarifa de envío ignorada por formato inválido: {str(e)}")
                continue
            if charge.is_active:
                charges.append(charge)

        return charges

    async def get_charge(self, charge_id: int) -> Optional[ShippingCharge]:
        for charge in await self.fetch_charges():
            if charge.id == charge_id:
                return charge
        return None


def calculate_shipping_cost(charge: Optional[ShippingCharge], subtotal: float) -> float:
    """
    Calcular costo de envío para un subtotal.

    - Sin tarifa seleccionada: 0
    - Subtotal mayor o igual al umbral de envío gratis: 0
    - En otro caso: la tarifa fija
    """
    if charge is None:
        return 0.0

    if charge.free_shipping_threshold and subtotal >= charge.free_shipping_threshold:
        return 0.0

    return float(charge.charge)


def meets_minimum_order(charge: Optional[ShippingCharge], subtotal: float) -> bool:
    """Verificar si el subtotal alcanza el pedido mínimo de la tarifa"""
    if charge is None:
        return False
    return subtotal >= charge.min_order_value


def get_shipping_info(charge: Optional[ShippingCharge], subtotal: float, free_shipping: bool = False) -> Dict:
    """
    Resumen de envío para mostrar en el carrito/checkout.

    Args:
        charge: Tarifa seleccionada
        subtotal: Subtotal del carrito
        free_shipping: Si el cupón aplicado otorga envío gratis
    """
    if charge is None:
        return {"shipping_price": 0.0, "is_free": False, "meets_minimum": False}

    shipping_price = 0.0 if free_shipping else calculate_shipping_cost(charge, subtotal)
    info = {
        "shipping_charge_id": charge.id,
        "region": charge.region,
        "shipping_price": shipping_price,
        "is_free": shipping_price == 0.0,
        "meets_minimum": meets_minimum_order(charge, subtotal),
        "min_order_value": charge.min_order_value,
        "threshold": charge.free_shipping_threshold
    }

    if free_shipping:
        info["message"] = "¡Envío gratis por cupón!"
    elif charge.free_shipping_threshold and shipping_price == 0.0:
        info["message"] = f"¡Envío gratis por compra mayor a ${charge.free_shipping_threshold}!"
    elif charge.free_shipping_threshold:
        info["remaining_for_free"] = round(max(0.0, charge.free_shipping_threshold - subtotal), 2)

    return info
