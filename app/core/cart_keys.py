"""
Resolución de la clave de almacenamiento del carrito según la identidad.
"""
from typing import Any, Optional

GUEST_CART_KEY = "cart:guest"
USER_CART_KEY_PREFIX = "cart:user:"


def get_identity_id(identity: Any) -> Optional[str]:
    """
    Extraer el identificador de la identidad (dict o objeto con atributo id).
    Retorna None para invitados.
    """
    if identity is None:
        return None

    if isinstance(identity, dict):
        user_id = identity.get("id")
    else:
        user_id = getattr(identity, "id", None)

    if user_id is None or str(user_id).strip() == "":
        return None
    return str(user_id)


def resolve_cart_key(identity: Any) -> str:
    """
    Generar clave del carrito:
    - Usuario autenticado: cart:user:<id>
    - Invitado: cart:guest
    """
    user_id = get_identity_id(identity)
    if user_id is None:
        return GUEST_CART_KEY
    return f"{USER_CART_KEY_PREFIX}{user_id}"
