"""
Tests de resolución de claves y backends de storage.
"""
from types import SimpleNamespace

import pytest

from core.cart_keys import GUEST_CART_KEY, resolve_cart_key
from core.cart_storage import MemoryCartStorage, RedisCartStorage, build_cart_storage


class FakeRedis:
    """Cliente mínimo con la interfaz de redis usada por RedisCartStorage"""

    def __init__(self):
        self.data = {}
        self.ttls = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value
        self.ttls.pop(key, None)

    def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl

    def delete(self, key):
        self.data.pop(key, None)


class TestCartKeys:
    """Clave del carrito según la identidad"""

    def test_usuario_autenticado(self):
        assert resolve_cart_key({"id": 42}) == "cart:user:42"

    def test_objeto_con_atributo_id(self):
        assert resolve_cart_key(SimpleNamespace(id="abc-123")) == "cart:user:abc-123"

    def test_invitado(self):
        assert resolve_cart_key(None) == GUEST_CART_KEY == "cart:guest"

    def test_identidad_sin_id_es_invitado(self):
        assert resolve_cart_key({"email": "x@test.com"}) == "cart:guest"
        assert resolve_cart_key({"id": ""}) == "cart:guest"


class TestRedisCartStorage:
    """Storage en Redis"""

    def test_guarda_con_expiracion(self):
        client = FakeRedis()
        storage = RedisCartStorage(client, ttl_seconds=3600)
        storage.set("cart:user:1", "{}")

        assert storage.get("cart:user:1") == "{}"
        assert client.ttls["cart:user:1"] == 3600

    def test_sin_expiracion(self):
        client = FakeRedis()
        storage = RedisCartStorage(client, ttl_seconds=0)
        storage.set("cart:guest", "{}")

        assert "cart:guest" not in client.ttls
        assert storage.get("cart:guest") == "{}"

    def test_eliminar(self):
        storage = RedisCartStorage(FakeRedis())
        storage.set("cart:guest", "{}")
        storage.delete("cart:guest")

        assert storage.get("cart:guest") is None


class TestBuildCartStorage:
    """Selección de backend por configuración"""

    def test_memoria(self):
        settings = SimpleNamespace(CART_STORAGE_BACKEND="memory")
        assert isinstance(build_cart_storage(settings), MemoryCartStorage)

    def test_redis(self):
        settings = SimpleNamespace(
            CART_STORAGE_BACKEND="Redis",
            REDIS_URL="redis://localhost:6379/0",
            CART_TTL_SECONDS=60
        )
        storage = build_cart_storage(settings)

        assert isinstance(storage, RedisCartStorage)
        assert storage.ttl_seconds == 60

    def test_backend_desconocido(self):
        with pytest.raises(ValueError):
            build_cart_storage(SimpleNamespace(CART_STORAGE_BACKEND="sqlite"))
