"""
Schemas para el carrito de compra, cupones y envíos.

El estado del carrito se persiste con los nombres de campo en camelCase
(items, totalItems, totalPrice, coupon, discount, finalTotal), por eso los
modelos de estado usan alias.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Literal, Dict, Any


# ==================== PRODUCT / COUPON ====================

class ProductSnapshot(BaseModel):
    """
    Copia del producto al momento de agregarlo al carrito.
    Conserva cualquier campo extra que envíe el cliente.
    """
    model_config = ConfigDict(extra="allow")

    id: int
    product_name: str = ""
    selling_price: float = 0.0
    discount_price: Optional[float] = None
    image: Optional[str] = None

    def unit_price(self) -> Optional[float]:
        """Precio con descuento si existe (y no es 0), si no el precio de venta"""
        price = self.discount_price or self.selling_price
        return float(price) if price else None


class Coupon(BaseModel):
    """Cupón verificado por la API de la tienda"""
    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    code: str
    type: Literal["percentage", "fixed"]
    value: float = 0.0
    discount: float = 0.0
    free_shipping: bool = False

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return v.strip().upper()


# ==================== CART STATE ====================

class CartLineItem(BaseModel):
    """Línea del carrito: producto + variante + cantidad"""
    model_config = ConfigDict(populate_by_name=True)

    product: ProductSnapshot
    quantity: int
    selected_color: Optional[str] = Field(None, alias="selectedColor")
    selected_size: Optional[str] = Field(None, alias="selectedSize")
    price: float  # precio unitario congelado al agregar

    def matches(self, product_id: int, selected_color: Optional[str], selected_size: Optional[str]) -> bool:
        return (
            self.product.id == product_id
            and self.selected_color == selected_color
            and self.selected_size == selected_size
        )


class CartState(BaseModel):
    """Estado completo del carrito tal como se guarda en el storage"""
    model_config = ConfigDict(populate_by_name=True)

    items: List[CartLineItem] = Field(default_factory=list)
    total_items: int = Field(0, alias="totalItems")
    total_price: float = Field(0.0, alias="totalPrice")
    coupon: Optional[Coupon] = None
    discount: float = 0.0
    final_total: float = Field(0.0, alias="finalTotal")

    def to_storage(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


# ==================== REQUEST SCHEMAS ====================

class CartItemCreate(BaseModel):
    """Schema para agregar producto al carrito"""
    product: ProductSnapshot
    quantity: int = Field(1, ge=1, le=100, description="Cantidad (1-100)")
    selected_color: Optional[str] = Field(None, description="Color seleccionado")
    selected_size: Optional[str] = Field(None, description="Talla seleccionada")


class CartItemUpdate(BaseModel):
    """Schema para actualizar cantidad de una línea"""
    selected_color: Optional[str] = None
    selected_size: Optional[str] = None
    quantity: int = Field(..., le=100, description="Nueva cantidad (menor a 1 elimina la línea)")


class CouponApplyRequest(BaseModel):
    """Código de cupón a verificar"""
    code: str = Field(..., min_length=1, max_length=50)

    @field_validator("code")
    @classmethod
    def strip_code(cls, v: str) -> str:
        code = v.strip()
        if not code:
            raise ValueError("El código de cupón es requerido")
        return code


class CartSummary(BaseModel):
    """Resumen del carrito (para badges, etc.)"""
    total_items: int
    total_price: float
    discount: float
    final_total: float


# ==================== SHIPPING / CHECKOUT ====================

class ShippingCharge(BaseModel):
    """Tarifa de envío configurada en la tienda"""
    model_config = ConfigDict(extra="allow")

    id: int
    region: str = "Default"
    charge: float = 0.0
    min_order_value: float = 0.0
    free_shipping_threshold: Optional[float] = None
    is_active: bool = True


class ShippingAddress(BaseModel):
    """Dirección de envío capturada en el checkout"""
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip_code: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)


class CheckoutRequest(BaseModel):
    """Datos para confirmar la compra del carrito"""
    shipping_address: ShippingAddress
    shipping_charge_id: int
    payment_method: Literal["cash_on_delivery", "stripe"] = "cash_on_delivery"
    payment_intent_id: Optional[str] = None
