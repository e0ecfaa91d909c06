import asyncio
import base64
import io
import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from .errors import DecodeFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecodedImage:
    """Image décodée, immuable une fois chargée."""
    native_width: int
    native_height: int
    image: Image.Image

    @classmethod
    def from_pil(cls, image: Image.Image):
        return cls(image.width, image.height, image)


def decode_image(data: bytes, filename: Optional[str] = None) -> DecodedImage:
    """
    Décode des octets en image PIL, en appliquant l'orientation EXIF.
    Lève DecodeFailure si le contenu n'est pas une image.
    """
    if not data:
        raise DecodeFailure("Fichier vide", filename)
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise DecodeFailure(f"Image illisible : {e}", filename) from e

    image = ImageOps.exif_transpose(image)
    logger.info("Image décodée %s : %dx%d (%s)", filename or "", image.width, image.height, image.mode)
    return DecodedImage.from_pil(image)


async def decode_image_async(data: bytes, filename: Optional[str] = None) -> DecodedImage:
    return await asyncio.to_thread(decode_image, data, filename)


def encode_png(image: Image.Image) -> bytes:
    buffered = io.BytesIO()
    image.save(buffered, format="PNG")
    return buffered.getvalue()


def pil_to_base64(image: Image.Image):
    """Convertit une image PIL en data URL base64 (PNG)."""
    return f"data:image/png;base64,{base64.b64encode(encode_png(image)).decode('utf-8')}"
