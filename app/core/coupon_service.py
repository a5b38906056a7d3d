"""
Verificación de cupones contra la API de la tienda.
"""
import itertools
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from pydantic import ValidationError

from core.cart_store import CartStore
from core.storefront_api import StorefrontAPIError, StorefrontClient
from schemas.carts import Coupon

logger = logging.getLogger(__name__)


class CouponVerificationError(StorefrontAPIError):
    """El cupón no existe, expiró o no aplica al carrito"""
    pass


class CouponService:
    """Verifica un código de cupón para el subtotal y productos del carrito"""

    def __init__(self, client: StorefrontClient):
        self.client = client

    async def verify(self, code: str, subtotal: float, product_ids: List[int]) -> Coupon:
        """
        Verificar cupón.

        Args:
            code: Código ingresado por el usuario
            subtotal: Subtotal actual del carrito
            product_ids: IDs de los productos del carrito

        Returns:
            Coupon con el descuento ya calculado por el servidor

        Raises:
            CouponVerificationError: si el servidor rechaza el cupón o falla
        """
        payload = {
            "code": code.strip(),
            "subtotal": subtotal,
            "product_ids": product_ids
        }

        try:
            body = await self.client.post("/coupon/apply", json=payload, default_error="Failed to apply coupon")
        except StorefrontAPIError as e:
            raise CouponVerificationError(e.message, status_code=e.status_code) from e

        if body.get("status") != "success" or not body.get("coupon"):
            raise CouponVerificationError(body.get("message") or "Failed to apply coupon")

        try:
            coupon = Coupon.model_validate(body["coupon"])
        except ValidationError as e:
            logger.error(f"Cupón inválido en respuesta de la API: {str(e)}")
            raise CouponVerificationError("Failed to apply coupon") from e

        logger.info(f"Cupón {coupon.code} verificado (descuento {coupon.discount})")
        return coupon


class CartEmptyError(Exception):
    """El carrito quedó vacío antes de poder aplicar el cupón"""
    pass


class CouponSequencer:
    """
    Ordena los intentos de aplicar cupón por clave de carrito.

    Solo el intento más reciente de cada carrito puede aplicar su resultado:
    si mientras se verificaba un cupón empezó otro intento para el mismo
    carrito, el resultado viejo se descarta.
    """

    def __init__(self):
        self._tickets = itertools.count(1)
        self._latest: Dict[str, int] = {}

    def begin(self, key: str) -> int:
        ticket = next(self._tickets)
        self._latest[key] = ticket
        return ticket

    def is_current(self, key: str, ticket: int) -> bool:
        return self._latest.get(key) == ticket

    def finish(self, key: str, ticket: int) -> None:
        if self.is_current(key, ticket):
            del self._latest[key]

    async def apply(self, store: CartStore, verify: Callable[[], Awaitable[Coupon]]) -> Optional[Coupon]:
        """
        Ejecutar la verificación y aplicar el cupón al store si sigue vigente.

        Returns:
            El cupón aplicado, o None si un intento más nuevo lo reemplazó

        Raises:
            CartEmptyError: si el carrito se vació mientras se verificaba
        """
        key = store.storage_key
        ticket = self.begin(key)

        # finally también libera el turno si la petición se cancela
        try:
            coupon = await verify()
            if not self.is_current(key, ticket):
                logger.info(f"Resultado de cupón {coupon.code} descartado para '{key}': hay un intento más reciente")
                return None
        finally:
            self.finish(key, ticket)

        # El carrito pudo cambiar mientras se verificaba el cupón
        store.reload(store.identity)
        if not store.items:
            logger.info(f"Cupón {coupon.code} no aplicado a '{key}': el carrito quedó vacío")
            raise CartEmptyError("El carrito está vacío")

        store.apply_coupon(coupon)
        return coupon
