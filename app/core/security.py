"""
Utilidades para seguridad: lectura y validación de JWT.

Los tokens los emite el servicio de autenticación de la tienda; aquí solo se
leen para saber a qué carrito pertenece la petición.
"""
from typing import Optional, Dict, Any
from fastapi import Request
from jose import JWTError, jwt
from core.config import settings


ACCESS_TOKEN_COOKIE = "access_token"


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decodificar y validar un token JWT.

    Returns:
        Dict con el payload del token o None si es inválido
    """
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except JWTError:
        return None


def get_access_token_from_request(request: Request) -> Optional[str]:
    """
    Obtener access token de la petición.
    Primero busca en cookies HttpOnly, luego en header Authorization.
    """
    token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if token:
        return token

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.replace("Bearer ", "", 1)

    return None
