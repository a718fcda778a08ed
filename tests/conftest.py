"""
Pytest configuration and fixtures for the print pipeline tests.

Provides an in-memory database, local storage under a temp directory,
a fake upscaler that really resizes images, and design factories.
"""

import io
from pathlib import Path

import pytest
from PIL import Image, ImageDraw

from printcore.config import AppConfig
from printcore.db import create_db_engine, create_session_factory, init_db, session_scope
from printcore.errors import StorageUploadError, UpscaleProviderError
from printcore.fetch import ImageFetcher
from printcore.final_render import FinalRenderer
from printcore.models import Design, DesignVariant
from printcore.print_master import PrintMasterService
from printcore.sizes import DEFAULT_SIZES
from printcore.storage import LocalStorage
from printcore.upscale import UpscaleProvider


@pytest.fixture
def test_config(tmp_path):
    """Configuration pointing every side effect at the temp directory."""
    return AppConfig(
        ENVIRONMENT="test",
        DATABASE_URL="sqlite://",
        LOG_FILE=str(tmp_path / "logs" / "printcore.log"),
        STORAGE_ROOT=str(tmp_path / "storage"),
        UPSCALE_PROVIDER="fake",
    )


@pytest.fixture
def catalog():
    return list(DEFAULT_SIZES)


@pytest.fixture
def session_factory():
    """Session factory bound to a fresh in-memory SQLite database."""
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


def make_image(width, height, color=(200, 60, 40), mode='RGB'):
    """Create a test image with a marker in the top-left corner."""
    img = Image.new(mode, (width, height), color)
    draw = ImageDraw.Draw(img)
    draw.rectangle([0, 0, max(1, width // 8), max(1, height // 8)], fill=(20, 20, 220))
    return img


def image_bytes(img, fmt='PNG'):
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


def save_image(img, path: Path) -> str:
    """Save an image and return its file:// URL."""
    path.parent.mkdir(parents=True, exist_ok=True)
    img.save(path)
    return path.resolve().as_uri()


@pytest.fixture
def image_dir(tmp_path):
    path = tmp_path / "images"
    path.mkdir()
    return path


@pytest.fixture
def source_image_url(image_dir):
    """A small 3:4 source artwork."""
    return save_image(make_image(60, 80), image_dir / "source.png")


class FakeUpscaler(UpscaleProvider):
    """Upscaler that resizes the input image locally and counts passes."""

    name = "fake"

    def __init__(self, output_dir: Path, output_shape: str = "str", fail: bool = False):
        self.output_dir = output_dir
        self.output_shape = output_shape
        self.fail = fail
        self.calls = []

    def run(self, image_url, scale):
        self.calls.append((image_url, scale))
        if self.fail:
            raise UpscaleProviderError("Upscaler unavailable", provider=self.name)

        content = ImageFetcher().fetch(image_url).content
        with Image.open(io.BytesIO(content)) as img:
            upscaled = img.resize((img.width * scale, img.height * scale), Image.Resampling.NEAREST)
            url = save_image(upscaled, self.output_dir / f"upscaled-{len(self.calls)}.png")

        if self.output_shape == "dict":
            return {"url": url}
        return url


class CountingStorage(LocalStorage):
    """Local storage that records every put and can be made to fail."""

    def __init__(self, root, fail: bool = False):
        super().__init__(str(root))
        self.puts = []
        self.fail = fail

    def put(self, path, data, content_type):
        self.puts.append(path)
        if self.fail:
            raise StorageUploadError(path, self.backend, "simulated outage")
        return super().put(path, data, content_type)


@pytest.fixture
def upscaler(tmp_path):
    return FakeUpscaler(tmp_path / "upscaled")


@pytest.fixture
def storage(tmp_path):
    return CountingStorage(tmp_path / "storage")


@pytest.fixture
def fetcher():
    return ImageFetcher(timeout=5)


@pytest.fixture
def print_masters(session_factory, upscaler, fetcher, storage, test_config, catalog):
    return PrintMasterService(session_factory, upscaler, fetcher, storage, test_config, catalog)


@pytest.fixture
def final_renderer(session_factory, print_masters, fetcher, storage, test_config, catalog):
    return FinalRenderer(session_factory, print_masters, fetcher, storage, test_config, catalog)


@pytest.fixture
def design_factory(session_factory, source_image_url):
    """Create and persist a design; returns its id."""

    def _create(image_url=None, variants=None, selected_variant=None, **fields):
        with session_scope(session_factory) as session:
            design = Design(image_url=image_url or source_image_url, **fields)
            session.add(design)
            session.flush()
            for index, variant_url in enumerate(variants or []):
                variant = DesignVariant(design_id=design.id, image_url=variant_url, sort_order=index)
                session.add(variant)
                session.flush()
                if selected_variant == index:
                    design.selected_variant_id = variant.id
            return design.id

    return _create
