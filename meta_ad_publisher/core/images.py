"""Image normalization and upload."""

from typing import Optional, Tuple
import base64
import binascii
import io
import re

import httpx
from PIL import Image as PILImage, UnidentifiedImageError

from .api import ApiClient
from .config import REQUEST_TIMEOUT
from .errors import ApiError, TransportError, UploadError
from .utils import logger

DATA_URI_PREFIX = re.compile(r"^data:image/[\w.+-]+;base64,")

EXTENSIONS = {"JPEG": "jpg", "PNG": "png", "GIF": "gif", "WEBP": "webp", "BMP": "bmp"}


def is_url(source: str) -> bool:
    return source.startswith("http://") or source.startswith("https://")


def strip_data_uri(data: str) -> str:
    """Remove an inline `data:image/...;base64,` prefix, leaving raw base64."""
    return DATA_URI_PREFIX.sub("", data.strip(), count=1)


def decode_base64_image(data: str) -> bytes:
    try:
        # Line-wrapped base64 (MIME, `base64` CLI) is valid input
        return base64.b64decode("".join(strip_data_uri(data).split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise UploadError(f"Image data is not valid base64: {e}")


def image_filename(image_bytes: bytes) -> str:
    """Identify the image format with Pillow and name the upload accordingly."""
    try:
        with PILImage.open(io.BytesIO(image_bytes)) as img:
            image_format = img.format
    except (UnidentifiedImageError, OSError) as e:
        raise UploadError(f"Data is not a recognizable image: {e}")
    return f"ad_image.{EXTENSIONS.get(image_format, 'jpg')}"


async def download_image(url: str, client: Optional[httpx.AsyncClient] = None) -> bytes:
    """
    Download an image from a URL.

    Raises:
        UploadError: the URL could not be fetched or did not return 200
    """
    logger.debug(f"Attempting to download image from URL: {url[:80]}")
    headers = {"User-Agent": "curl/8.4.0", "Accept": "*/*"}

    try:
        if client is not None:
            response = await client.get(url, headers=headers)
        else:
            async with httpx.AsyncClient(follow_redirects=True, timeout=REQUEST_TIMEOUT) as http:
                response = await http.get(url, headers=headers)
    except httpx.RequestError as e:
        raise UploadError(f"Failed to fetch image: {e}")

    if response.status_code != 200:
        raise UploadError(f"Failed to fetch image: {response.status_code}")

    logger.debug(f"Successfully downloaded image: {len(response.content)} bytes")
    return response.content


class ImageUploader:
    """Turn an image URL or inline base64 data into a platform image hash."""

    def __init__(self, api: ApiClient, ad_account_id: str, http_client: Optional[httpx.AsyncClient] = None):
        self.api = api
        self.ad_account_id = ad_account_id
        self.http_client = http_client

    async def normalize(self, source: str) -> Tuple[bytes, str]:
        if not source:
            raise UploadError("No image provided")
        if is_url(source):
            logger.debug("Image is a URL, fetching and converting...")
            image_bytes = await download_image(source, self.http_client)
        else:
            image_bytes = decode_base64_image(source)
        return image_bytes, image_filename(image_bytes)

    async def upload(self, source: str) -> str:
        image_bytes, filename = await self.normalize(source)
        logger.info(f"Uploading {filename} ({len(image_bytes)} bytes) to {self.ad_account_id}")
        try:
            uploaded = await self.api.upload(self.ad_account_id, image_bytes, filename)
        except (ApiError, TransportError) as e:
            raise UploadError(e.message, details=e.details)
        logger.info(f"Image uploaded successfully, hash: {uploaded.hash}")
        return uploaded.hash
