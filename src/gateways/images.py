"""Image generation through LiteLLM plus persistence of the resulting URLs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Any, Callable

from litellm import aimage_generation
from sqlalchemy import select
from sqlalchemy.orm import Session

from config import LlmConfig
from gateways.base import GatewayFailure, SessionGateway, from_storage
from llm import is_rate_limit_error
from models import Image
from results import (
    MISSING_REQUIRED_FIELD,
    RATE_LIMITED,
    Result,
    dependency_error,
    not_found_error,
    validation_error,
)

logger = logging.getLogger(__name__)

_MAX_IMAGES = 4


@dataclass(frozen=True)
class ImageOptions:
    """Generation options taken from command flags."""

    size: str | None = None
    quality: str | None = None
    style: str | None = None
    number: int = 1
    tag: str | None = None


@dataclass(frozen=True)
class ImageRecord:
    id: int
    user_id: int
    prompt: str
    url: str
    tag: str | None
    size: str | None
    quality: str | None
    style: str | None
    channel_id: str | None
    created_at: datetime | None = None


def _to_record(image: Image) -> ImageRecord:
    return ImageRecord(
        id=image.id,
        user_id=image.user_id,
        prompt=image.prompt,
        url=image.url,
        tag=image.tag,
        size=image.size,
        quality=image.quality,
        style=image.style,
        channel_id=image.channel_id,
        created_at=from_storage(image.created_at),
    )


def _extract_urls(response: Any) -> list[str]:
    data = getattr(response, "data", None)
    if data is None and isinstance(response, dict):
        data = response.get("data")
    urls: list[str] = []
    for item in data or []:
        url = item.get("url") if isinstance(item, dict) else getattr(item, "url", None)
        if url:
            urls.append(str(url))
    return urls


class ImagesGateway(SessionGateway):
    """Generate images and keep a record of them."""

    def __init__(self, session_factory: Callable[[], Session], config: LlmConfig) -> None:
        super().__init__(session_factory)
        self._config = config

    def _generation_kwargs(self, prompt: str, options: ImageOptions) -> dict[str, Any]:
        request: dict[str, Any] = {
            "model": self._config.image_model,
            "prompt": prompt,
            "n": max(1, min(options.number, _MAX_IMAGES)),
            "timeout": self._config.timeout,
        }
        for key in ("size", "quality", "style"):
            value = getattr(options, key)
            if value:
                request[key] = value
        if self._config.api_key:
            request["api_key"] = self._config.api_key
        if self._config.base_url:
            request["api_base"] = self._config.base_url
        return request

    async def create_image(
        self,
        user_id: int,
        prompt: str,
        options: ImageOptions | None = None,
        channel_id: str | None = None,
    ) -> Result[list[ImageRecord]]:
        """Generate ``options.number`` images and persist one row per URL."""
        options = options or ImageOptions()
        if not (prompt or "").strip():
            return Result.failure(
                validation_error("Image prompt is required", code=MISSING_REQUIRED_FIELD)
            )
        try:
            response = await aimage_generation(**self._generation_kwargs(prompt, options))
        except Exception as exc:
            if is_rate_limit_error(exc):
                logger.warning("Image generation rate limited")
                return Result.failure(
                    dependency_error("Image generation is rate limited", code=RATE_LIMITED)
                )
            logger.error("Image generation failed: %s", exc)
            return Result.failure(dependency_error("Image generation failed"))
        urls = _extract_urls(response)
        if not urls:
            return Result.failure(dependency_error("Image generation returned no images"))

        def handler(session: Session) -> list[ImageRecord]:
            rows = [
                Image(
                    user_id=user_id,
                    prompt=prompt.strip(),
                    url=url,
                    tag=options.tag,
                    size=options.size,
                    quality=options.quality,
                    style=options.style,
                    channel_id=channel_id,
                )
                for url in urls
            ]
            session.add_all(rows)
            session.flush()
            return [_to_record(row) for row in rows]

        return await self._run("create_image", handler)

    async def get_images_by_user_id(
        self,
        user_id: int,
        channel_id: str | None = None,
        tag: str | None = None,
    ) -> Result[list[ImageRecord]]:
        def handler(session: Session) -> list[ImageRecord]:
            stmt = select(Image).where(Image.user_id == user_id)
            if channel_id is not None:
                stmt = stmt.where(Image.channel_id == channel_id)
            if tag:
                stmt = stmt.where(Image.tag == tag)
            stmt = stmt.order_by(Image.created_at.desc(), Image.id.desc())
            return [_to_record(image) for image in session.scalars(stmt)]

        return await self._run("get_images_by_user_id", handler)

    async def delete_image(self, image_id: int, user_id: int) -> Result[bool]:
        def handler(session: Session) -> bool:
            image = session.get(Image, image_id)
            if image is None or image.user_id != user_id:
                raise GatewayFailure(not_found_error(f"Image #{image_id} not found"))
            session.delete(image)
            return True

        return await self._run("delete_image", handler)


__all__ = ["ImageOptions", "ImageRecord", "ImagesGateway"]
