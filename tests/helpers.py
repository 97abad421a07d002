import io
import base64

from PIL import Image

from src.engines.generation.schemas import ProviderOutcome, GeneratedImage


def make_png_bytes(color=(255, 0, 0), size=(4, 4)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_png_data_url(color=(255, 0, 0)) -> str:
    return "data:image/png;base64," + base64.b64encode(make_png_bytes(color)).decode("utf-8")


def make_outcome(*urls: str, cost_units: int = 5) -> ProviderOutcome:
    return ProviderOutcome(
        images=[GeneratedImage(url=url) for url in urls],
        duration_ms=120,
        cost_units=cost_units
    )
