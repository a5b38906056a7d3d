from .carts import (
    ProductSnapshot,
    Coupon,
    CartLineItem,
    CartState,
    CartItemCreate,
    CartItemUpdate,
    CouponApplyRequest,
    CartSummary,
    ShippingCharge,
    ShippingAddress,
    CheckoutRequest
)

__all__ = [
    "ProductSnapshot",
    "Coupon",
    "CartLineItem",
    "CartState",
    "CartItemCreate",
    "CartItemUpdate",
    "CouponApplyRequest",
    "CartSummary",
    "ShippingCharge",
    "ShippingAddress",
    "CheckoutRequest",
]
