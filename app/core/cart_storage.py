"""
Almacenamiento de carritos.

Redis se usa para los carritos persistidos (volátiles, rápidos, con expiración).
El storage en memoria sirve para desarrollo local y tests.
Cada carrito se guarda como un único blob JSON bajo su clave.
"""
from abc import ABC, abstractmethod
from typing import Dict, Optional
import logging

import redis

logger = logging.getLogger(__name__)


class CartStorage(ABC):
    """
    Interfaz mínima de almacenamiento clave/valor para carritos.
    Las implementaciones propagan sus errores; el CartStore decide qué hacer con ellos.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Obtener el blob guardado o None si no existe"""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Guardar (o sobrescribir) el blob de una clave"""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Eliminar una clave"""
        pass


class RedisCartStorage(CartStorage):
    """Storage de carritos en Redis"""

    def __init__(self, client: "redis.Redis", ttl_seconds: int = 7 * 24 * 60 * 60):
        self.client = client
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int = 7 * 24 * 60 * 60) -> "RedisCartStorage":
        client = redis.from_url(url, decode_responses=True)
        return cls(client, ttl_seconds=ttl_seconds)

    def get(self, key: str) -> Optional[str]:
        return self.client.get(key)

    def set(self, key: str, value: str) -> None:
        # Renovar expiración en cada escritura
        if self.ttl_seconds and self.ttl_seconds > 0:
            self.client.setex(key, self.ttl_seconds, value)
        else:
            self.client.set(key, value)

    def delete(self, key: str) -> None:
        self.client.delete(key)

    def close(self) -> None:
        self.client.close()


class MemoryCartStorage(CartStorage):
    """Storage en memoria del proceso (sin expiración)"""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return list(self._data.keys())


def build_cart_storage(settings) -> CartStorage:
    """
    Construir el storage según CART_STORAGE_BACKEND.
    """
    backend = settings.CART_STORAGE_BACKEND.lower()

    if backend == "redis":
        logger.info("Usando Redis para carritos")
        return RedisCartStorage.from_url(settings.REDIS_URL, ttl_seconds=settings.CART_TTL_SECONDS)
    if backend == "memory":
        logger.warning("Usando storage en memoria para carritos (no persiste entre reinicios)")
        return MemoryCartStorage()

    raise ValueError(f"Unsupported cart storage backend: {backend}")
