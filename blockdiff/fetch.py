"""Image retrieval: fetch over HTTP(S) or open from disk, decode, save.

Uses httpx for HTTP and Pillow for decoding. Format is guessed from the
bytes, not the URL or Content-Type. Every failure is raised as
ImageSourceError with the original exception chained. Nothing is retried.
"""

from __future__ import annotations

import asyncio
import io
import logging
from pathlib import Path
from urllib.parse import urlparse

import httpx
from PIL import Image, UnidentifiedImageError

from blockdiff.core.errors import ImageSourceError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def is_url(source: str) -> bool:
    return urlparse(source).scheme in ('http', 'https')


def decode_image(data: bytes, source: str = '<bytes>') -> Image.Image:
    """Decode encoded image bytes (PNG, JPEG, ...) into a loaded PIL image."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageSourceError(f'cannot decode image from {source}: {exc}') from exc
    return image


def _check_response(response: httpx.Response, url: str) -> bytes:
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise ImageSourceError(f'fetch failed for {url}: HTTP {response.status_code}') from exc
    logger.debug('fetched %s (%d bytes)', url, len(response.content))
    return response.content


def fetch_image(
    url: str,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.BaseTransport | None = None,
) -> Image.Image:
    """Download and decode one image."""
    logger.info('fetching %s', url)
    try:
        with httpx.Client(timeout=timeout, follow_redirects=True, transport=transport) as client:
            response = client.get(url)
    except httpx.HTTPError as exc:
        raise ImageSourceError(f'fetch failed for {url}: {exc}') from exc
    return decode_image(_check_response(response, url), source=url)


async def fetch_image_async(url: str, client: httpx.AsyncClient) -> Image.Image:
    """Download and decode one image with a shared async client."""
    logger.info('fetching %s', url)
    try:
        response = await client.get(url)
    except httpx.HTTPError as exc:
        raise ImageSourceError(f'fetch failed for {url}: {exc}') from exc
    return decode_image(_check_response(response, url), source=url)


def open_image(path: str | Path) -> Image.Image:
    """Open and decode an image file from disk."""
    path = Path(path)
    if not path.is_file():
        raise ImageSourceError(f'image not found: {path}')
    return decode_image(path.read_bytes(), source=str(path))


def load_image(
    source: str,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.BaseTransport | None = None,
) -> Image.Image:
    """Fetch a URL or open a local path."""
    if is_url(source):
        return fetch_image(source, timeout=timeout, transport=transport)
    return open_image(source)


async def fetch_pair(
    source_a: str,
    source_b: str,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[Image.Image, Image.Image]:
    """Load two images concurrently. URLs share one async client.

    If either load fails the other is cancelled and awaited before the
    client closes, then the first failure is raised.
    """
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True, transport=transport) as client:

        async def _one(source: str) -> Image.Image:
            if is_url(source):
                return await fetch_image_async(source, client)
            return open_image(source)

        tasks = [asyncio.create_task(_one(source_a)), asyncio.create_task(_one(source_b))]
        try:
            image_a, image_b = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
    return image_a, image_b


def save_image(image: Image.Image, path: str | Path) -> Path:
    """Save an image, creating parent directories. Format follows the suffix."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        image.save(path)
    except (ValueError, OSError) as exc:
        raise ImageSourceError(f'cannot save image to {path}: {exc}') from exc
    logger.info('saved %s', path)
    return path
