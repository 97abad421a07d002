import base64
from pathlib import Path

import httpx
import pytest

from src.core.exceptions import PersistenceError
from src.core.storage import LocalArtifactStorage, extension_from_content_type
from tests.helpers import make_png_bytes, make_png_data_url


def _remote_storage(tmp_path, handler) -> LocalArtifactStorage:
    return LocalArtifactStorage(
        storage_path=str(tmp_path / "out"),
        public_url_base="/generated/",
        transport=httpx.MockTransport(handler)
    )


@pytest.mark.asyncio
async def test_saves_data_url(storage, png_data_url):
    saved = await storage.save_image(png_data_url, "remove-bg")

    assert saved.file_name.startswith("remove-bg-")
    assert saved.file_name.endswith(".png")
    assert saved.public_url == f"/generated/{saved.file_name}"
    assert Path(saved.file_path).read_bytes() == base64.b64decode(png_data_url.split(",", 1)[1])


@pytest.mark.asyncio
async def test_downloads_remote_url(tmp_path):
    png = make_png_bytes()

    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == "https://cdn.z.ai/out/1.jpg"
        return httpx.Response(200, content=png, headers={"content-type": "image/jpeg"})

    storage = _remote_storage(tmp_path, handler)
    saved = await storage.save_image("https://cdn.z.ai/out/1.jpg", "scene-gen")

    assert saved.file_name.endswith(".jpg")
    assert saved.public_url == f"/generated/{saved.file_name}"
    assert Path(saved.file_path).read_bytes() == png


@pytest.mark.asyncio
async def test_remote_error_status_raises(tmp_path):
    storage = _remote_storage(tmp_path, lambda request: httpx.Response(404))

    with pytest.raises(PersistenceError) as exc_info:
        await storage.save_image("https://cdn.z.ai/expired.png", "scene-gen")
    assert exc_info.value.message == "Failed to download image: 404 Not Found"


@pytest.mark.asyncio
async def test_unsupported_scheme(storage):
    with pytest.raises(PersistenceError) as exc_info:
        await storage.save_image("ftp://files/x.png", "polish")
    assert "Unsupported URL format" in exc_info.value.message


@pytest.mark.asyncio
async def test_malformed_data_url(storage):
    with pytest.raises(PersistenceError):
        await storage.save_image("data:text/plain;base64,aGVsbG8=", "polish")


@pytest.mark.asyncio
async def test_payload_that_is_not_an_image(storage):
    payload = base64.b64encode(b"definitely not a png").decode("utf-8")
    with pytest.raises(PersistenceError) as exc_info:
        await storage.save_image(f"data:image/png;base64,{payload}", "polish")
    assert "not a valid image" in exc_info.value.message


@pytest.mark.asyncio
async def test_save_images_keeps_order(storage):
    urls = [make_png_data_url((i * 40, 0, 0)) for i in range(3)]
    saved = await storage.save_images(urls, "upscale")

    assert [s.file_name.split("-")[1] for s in saved] == ["1", "2", "3"]
    for url, artifact in zip(urls, saved):
        assert Path(artifact.file_path).read_bytes() == base64.b64decode(url.split(",", 1)[1])


@pytest.mark.asyncio
async def test_delete_image(storage, png_data_url):
    saved = await storage.save_image(png_data_url, "polish")
    assert await storage.delete_image(saved.file_path) is True
    assert await storage.delete_image(saved.file_path) is False


def test_extension_from_content_type():
    assert extension_from_content_type("image/webp") == "webp"
    assert extension_from_content_type("image/jpeg; charset=binary") == "jpg"
    assert extension_from_content_type("application/octet-stream") == "png"


def test_generated_filenames_are_unique():
    names = {LocalArtifactStorage.generate_filename("polish") for _ in range(50)}
    assert len(names) == 50
