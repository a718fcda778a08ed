"""Image downloads and dimension probing."""

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple
from urllib.parse import unquote, urlparse

import requests
from PIL import Image, UnidentifiedImageError
from loguru import logger

from printcore.errors import DownloadError, RenderError

DEFAULT_MIME_TYPE = "image/png"


@dataclass(frozen=True)
class FetchedImage:
    url: str
    content: bytes
    mime_type: str

    @property
    def file_size(self) -> int:
        return len(self.content)


def probe_dimensions(content: bytes) -> Tuple[int, int]:
    """Read true pixel dimensions from encoded image bytes."""
    try:
        with Image.open(io.BytesIO(content)) as img:
            return img.size
    except (UnidentifiedImageError, OSError) as e:
        raise RenderError(f"Could not read image data: {e}", details={'bytes': len(content)})


class ImageFetcher:
    """Downloads images over HTTP(S) or from file:// URLs."""

    def __init__(self, timeout: float = 60.0, session: requests.Session = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self, url: str) -> FetchedImage:
        if url.startswith("file://"):
            return self._fetch_file(url)

        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise DownloadError(url, reason=str(e))

        if not response.ok:
            raise DownloadError(url, status_code=response.status_code, reason=response.reason)

        mime_type = response.headers.get("content-type") or DEFAULT_MIME_TYPE
        mime_type = mime_type.split(";")[0].strip()
        content = response.content
        logger.debug(f"Downloaded {url[:80]} ({len(content):,} bytes, {mime_type})")
        return FetchedImage(url=url, content=content, mime_type=mime_type)

    def _fetch_file(self, url: str) -> FetchedImage:
        path = Path(unquote(urlparse(url).path))
        try:
            content = path.read_bytes()
        except OSError as e:
            raise DownloadError(url, reason=str(e))
        mime_type = "image/jpeg" if path.suffix.lower() in (".jpg", ".jpeg") else DEFAULT_MIME_TYPE
        return FetchedImage(url=url, content=content, mime_type=mime_type)

    def fetch_dimensions(self, url: str) -> Tuple[int, int]:
        return probe_dimensions(self.fetch(url).content)
