"""
Cliente HTTP para la API remota de la tienda.

Los servicios de cupones, envíos, órdenes y favoritos comparten este cliente.
"""
import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class StorefrontAPIError(Exception):
    """Error al comunicarse con la API de la tienda"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StorefrontClient:
    """
    Envoltura sobre httpx.AsyncClient.

    Args:
        base_url: URL base de la API (ej. https://tienda.com/api)
        timeout: Timeout por petición en segundos
        transport: Transporte httpx opcional (tests)
    """

    def __init__(self, base_url: str, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"}
        )

    async def request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        default_error: str = "Storefront API request failed",
        token: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Ejecutar una petición y retornar el body JSON.
        Con token se reenvía como Bearer (endpoints del usuario, ej. favoritos).

        Raises:
            StorefrontAPIError: error de red, status no exitoso o body inválido.
                Usa el "message" del servidor cuando viene en la respuesta.
        """
        headers = {"Authorization": f"Bearer {token}"} if token else None
        try:
            response = await self._client.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Error de red en {method} {path}: {str(e)}")
            raise StorefrontAPIError(default_error) from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_error:
            message = default_error
            if isinstance(body, dict) and body.get("message"):
                message = body["message"]
            logger.warning(f"{method} {path} respondió {response.status_code}: {message}")
            raise StorefrontAPIError(message, status_code=response.status_code)

        if not isinstance(body, dict):
            logger.error(f"Respuesta inválida en {method} {path}")
            raise StorefrontAPIError(default_error, status_code=response.status_code)

        return body

    async def get(self, path: str, **kwargs) -> Dict[str, Any]:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, json: Optional[Dict[str, Any]] = None, **kwargs) -> Dict[str, Any]:
        return await self.request("POST", path, json=json, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()
