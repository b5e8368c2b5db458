"""Async HTTP client for the LaterStack API."""

import logging

import httpx

from laterstack.schemas import ActionResult, ItemListResponse

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0


class LaterStackClient:
    """Thin wrapper over the REST API.

    Failure responses carry an ActionResult body, so they are parsed rather
    than raised.
    """

    def __init__(
        self,
        base_url: str,
        external_id: str,
        auth_header: str = "X-User-Id",
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={auth_header: external_id},
            transport=transport,
            timeout=timeout,
        )

    async def __aenter__(self) -> "LaterStackClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _action(self, method: str, path: str, **kwargs) -> ActionResult:
        response = await self._client.request(method, path, **kwargs)
        try:
            return ActionResult.model_validate(response.json())
        except ValueError:
            logger.error("Unexpected %s response from %s", response.status_code, path)
            response.raise_for_status()
            raise

    async def save_article(self, url: str) -> ActionResult:
        return await self._action("POST", "/api/articles", json={"url": url})

    async def mark_read(self, item_id: int) -> ActionResult:
        return await self._action("POST", f"/api/articles/{item_id}/read")

    async def mark_unread(self, item_id: int) -> ActionResult:
        return await self._action("POST", f"/api/articles/{item_id}/unread")

    async def archive(self, item_id: int) -> ActionResult:
        return await self._action("POST", f"/api/articles/{item_id}/archive")

    async def unarchive(self, item_id: int) -> ActionResult:
        return await self._action("POST", f"/api/articles/{item_id}/unarchive")

    async def list_items(self, item_filter: str = "all") -> ItemListResponse:
        response = await self._client.get("/api/articles", params={"filter": item_filter})
        response.raise_for_status()
        return ItemListResponse.model_validate(response.json())
