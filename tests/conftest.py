"""
Fixtures compartidos para los tests del carrito.
Ejecutar con: pytest tests -v
"""
import os
import sys
import uuid
from datetime import datetime, timedelta

import pytest
from jose import jwt

# Agregar app al path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'app'))

from core.cart_storage import CartStorage, MemoryCartStorage
from core.config import settings


def create_access_token(data, expires_delta=None):
    """Token JWT de acceso como los que emite el servicio de autenticación"""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=30))

    to_encode.update({
        "exp": expire,
        "iat": datetime.utcnow(),
        "type": "access",
        "jti": str(uuid.uuid4())
    })

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


class FailingStorage(CartStorage):
    """Storage que falla en lectura y/o escritura"""

    def __init__(self, fail_get: bool = True, fail_set: bool = True):
        self.fail_get = fail_get
        self.fail_set = fail_set
        self.data = {}

    def get(self, key):
        if self.fail_get:
            raise ConnectionError("storage no disponible")
        return self.data.get(key)

    def set(self, key, value):
        if self.fail_set:
            raise OSError("cuota excedida")
        self.data[key] = value

    def delete(self, key):
        self.data.pop(key, None)


@pytest.fixture
def storage():
    """Storage en memoria vacío"""
    return MemoryCartStorage()


@pytest.fixture
def product():
    """Producto con precio de venta y precio con descuento"""
    return {
        "id": 7,
        "product_name": "Camisa Lino",
        "selling_price": 100,
        "discount_price": 80,
        "image": "shirts/lino.webp"
    }


@pytest.fixture
def coupon():
    return {"id": 3, "code": "save20", "type": "fixed", "value": 20, "discount": 20, "free_shipping": False}


@pytest.fixture
def failing_storage():
    """Fábrica de storages que fallan"""
    return FailingStorage


@pytest.fixture
def make_access_token():
    """Fábrica de tokens JWT para identificar al usuario en los endpoints"""
    return create_access_token
