from typing import Any, Optional

import httpx
import structlog

from gallery.config import ClientSettings

logger = structlog.get_logger(__name__)


class GalleryAPIError(Exception):
    """Non-2xx response or transport failure talking to the gallery service."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class GalleryAPI:
    """Thin async wrapper over the gallery service's JSON endpoints."""

    def __init__(self, base_url: Optional[str] = None, public_key: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        client_settings = ClientSettings()
        self.base_url = base_url or client_settings.API_URL
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {public_key or client_settings.PUBLIC_KEY}"},
            transport=transport,
        )

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise GalleryAPIError(f"{method} {path} failed: {e}") from e
        if not response.is_success:
            try:
                message = response.json().get("error", response.reason_phrase)
            except ValueError:
                message = response.reason_phrase
            raise GalleryAPIError(f"{method} {path} -> {response.status_code}: {message}",
                                  status_code=response.status_code)
        return response.json()

    async def health(self) -> dict:
        return await self._request("GET", "/health")

    async def list_images(self) -> list[dict]:
        body = await self._request("GET", "/images")
        return body.get("images", [])

    async def upload_images(self, entries: list[dict]) -> dict:
        return await self._request("POST", "/images", json={"images": entries})

    async def delete_image(self, image_id: str) -> dict:
        return await self._request("DELETE", f"/images/{image_id}")

    async def aclose(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()
