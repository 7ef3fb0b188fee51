"""PNG export of the selected node through the Figma REST images endpoint."""

from __future__ import annotations

import logging

import httpx

from core.config import get_settings
from services.review.exceptions import ExportFailureError
from services.review.interfaces import ExporterProtocol
from services.review.models import Selection


logger = logging.getLogger(__name__)


class FigmaImageExporter(ExporterProtocol):
    """Ask the host API to render the node, then download the rendered PNG."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        scale: float | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.FIGMA_API_BASE_URL).rstrip("/")
        self.scale = scale or settings.EXPORT_SCALE
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self._http_client = http_client

    async def export_png(self, selection: Selection, token: str) -> bytes:
        if self._http_client is not None:
            return await self._export(self._http_client, selection, token)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await self._export(client, selection, token)

    async def _export(
        self, client: httpx.AsyncClient, selection: Selection, token: str
    ) -> bytes:
        node_id = selection.node.id
        try:
            render = await client.get(
                f"{self.base_url}/images/{selection.file_key}",
                params={"ids": node_id, "format": "png", "scale": self.scale},
                headers={"X-Figma-Token": token},
            )
            render.raise_for_status()
            payload = render.json()

            if payload.get("err"):
                raise ExportFailureError(str(payload["err"]))
            image_url = (payload.get("images") or {}).get(node_id)
            if not image_url:
                raise ExportFailureError("the host returned no image for the node")

            download = await client.get(image_url)
            download.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning("Export request rejected: %s", exc.response.status_code)
            raise ExportFailureError(f"HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            logger.warning("Export request failed: %s", type(exc).__name__)
            raise ExportFailureError(type(exc).__name__) from exc
        except (ValueError, AttributeError) as exc:
            logger.warning("Export response parse failed: %s", type(exc).__name__)
            raise ExportFailureError("unreadable render response") from exc

        if not download.content:
            raise ExportFailureError("the rendered image is empty")
        return download.content
