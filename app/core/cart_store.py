"""
Store del carrito de compra.

Mantiene las líneas del carrito y el cupón aplicado, recalcula los totales
después de cada cambio y persiste el estado completo bajo la clave de la
identidad actual (usuario o invitado).

La persistencia es best-effort: si el storage falla al leer se trabaja con un
carrito vacío y si falla al escribir el cambio queda solo en memoria. Los
errores se reportan con el callback on_error, nunca se propagan.
"""
import json
import logging
from typing import Any, Callable, List, Optional

from pydantic import ValidationError

from core.cart_keys import resolve_cart_key
from core.cart_storage import CartStorage
from schemas.carts import CartLineItem, CartState, Coupon, ProductSnapshot

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[str, Exception], None]


def log_storage_error(message: str, exc: Exception) -> None:
    logger.error(f"❌ {message}: {str(exc)}")


class CartStore:
    """Fuente única del estado del carrito para una identidad"""

    def __init__(
        self,
        storage: CartStorage,
        identity: Any = None,
        key_resolver: Callable[[Any], str] = resolve_cart_key,
        on_error: Optional[ErrorCallback] = None
    ):
        self._storage = storage
        self._key_resolver = key_resolver
        self._on_error = on_error or log_storage_error
        self._identity = identity
        self._state = CartState()
        self.reload(identity)

    # ==================== LECTURA ====================

    @property
    def identity(self) -> Any:
        return self._identity

    @property
    def storage_key(self) -> str:
        return self._key_resolver(self._identity)

    @property
    def items(self) -> List[CartLineItem]:
        return [item.model_copy(deep=True) for item in self._state.items]

    @property
    def total_items(self) -> int:
        return self._state.total_items

    @property
    def total_price(self) -> float:
        return self._state.total_price

    @property
    def coupon(self) -> Optional[Coupon]:
        return self._state.coupon.model_copy() if self._state.coupon else None

    @property
    def discount(self) -> float:
        return self._state.discount

    @property
    def final_total(self) -> float:
        return self._state.final_total

    def snapshot(self) -> CartState:
        return self._state.model_copy(deep=True)

    def to_dict(self) -> dict:
        return self._state.to_storage()

    def product_ids(self) -> List[int]:
        return [item.product.id for item in self._state.items]

    # ==================== OPERACIONES ====================

    def add_item(
        self,
        product: Any,
        quantity: int = 1,
        selected_color: Optional[str] = None,
        selected_size: Optional[str] = None
    ) -> None:
        """
        Agregar producto al carrito.

        - Si ya existe una línea con el mismo producto, color y talla, suma la cantidad
        - Si no, crea la línea con el precio unitario congelado en este momento
        """
        if quantity < 1:
            raise ValueError(f"Quantity must be at least 1, got {quantity}")

        if not isinstance(product, ProductSnapshot):
            product = ProductSnapshot.model_validate(product)

        existing = self._find(product.id, selected_color, selected_size)
        if existing is not None:
            existing.quantity += quantity
        else:
            price = product.unit_price()
            if price is None:
                raise ValueError(f"Product {product.id} has no selling or discount price")

            self._state.items.append(CartLineItem(
                product=product,
                quantity=quantity,
                selected_color=selected_color,
                selected_size=selected_size,
                price=price
            ))

        self._commit()

    def remove_item(
        self,
        product_id: int,
        selected_color: Optional[str] = None,
        selected_size: Optional[str] = None
    ) -> None:
        """Eliminar la línea que coincide exactamente con producto, color y talla"""
        self._state.items = [
            item for item in self._state.items
            if not item.matches(product_id, selected_color, selected_size)
        ]
        self._commit()

    def update_quantity(
        self,
        product_id: int,
        selected_color: Optional[str],
        selected_size: Optional[str],
        quantity: int
    ) -> None:
        """
        Sobrescribir la cantidad de una línea.
        Una cantidad menor a 1 elimina la línea.
        """
        if quantity < 1:
            self.remove_item(product_id, selected_color, selected_size)
            return

        item = self._find(product_id, selected_color, selected_size)
        if item is not None:
            item.quantity = quantity

        self._commit()

    def apply_coupon(self, coupon: Any) -> None:
        """
        Reemplazar el cupón actual.
        No valida el cupón contra el carrito: eso ya lo hizo la API de cupones.
        """
        if not isinstance(coupon, Coupon):
            coupon = Coupon.model_validate(coupon)

        self._state.coupon = coupon
        self._commit()

    def remove_coupon(self) -> None:
        self._state.coupon = None
        self._commit()

    def clear(self) -> None:
        """Vaciar el carrito por completo (incluye cupón)"""
        self._state = CartState()
        self._persist()

    def reload(self, identity: Any = None) -> None:
        """
        Descartar el estado en memoria y leer el carrito guardado para la identidad.
        Se usa después de login, logout o al restaurar la sesión.
        """
        self._identity = identity
        self._state = self._load()

    # ==================== INTERNOS ====================

    def _find(
        self,
        product_id: int,
        selected_color: Optional[str],
        selected_size: Optional[str]
    ) -> Optional[CartLineItem]:
        for item in self._state.items:
            if item.matches(product_id, selected_color, selected_size):
                return item
        return None

    def _recalculate(self) -> None:
        state = self._state
        state.total_items = sum(item.quantity for item in state.items)
        state.total_price = sum(item.price * item.quantity for item in state.items)

        # Un carrito vacío invalida cualquier cupón
        if not state.items:
            state.coupon = None

        state.discount = float(state.coupon.discount) if state.coupon else 0.0
        state.final_total = max(0.0, state.total_price - state.discount)

    def _commit(self) -> None:
        self._recalculate()
        self._persist()

    def _load(self) -> CartState:
        key = self.storage_key
        try:
            raw = self._storage.get(key)
        except Exception as e:
            self._on_error(f"Error al leer el carrito '{key}'", e)
            return CartState()

        if raw is None:
            return CartState()

        try:
            return CartState.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            self._on_error(f"Carrito corrupto en '{key}'", e)
            return CartState()

    def _persist(self) -> None:
        key = self.storage_key
        try:
            self._storage.set(key, json.dumps(self._state.to_storage()))
        except Exception as e:
            self._on_error(f"Error al guardar el carrito '{key}'", e)
