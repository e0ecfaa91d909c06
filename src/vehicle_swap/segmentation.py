import asyncio
import logging

import numpy as np
from PIL import Image
from rembg import remove

from .config import ALPHA_THRESHOLD
from .errors import ExternalServiceFailure

logger = logging.getLogger(__name__)

SERVICE_NAME = "extraction"


def get_alpha_bbox(image_rgba: Image.Image, alpha_threshold=ALPHA_THRESHOLD):
    """Boîte (gauche, haut, droite, bas) des pixels suffisamment opaques, ou None."""
    alpha = np.array(image_rgba)[:, :, 3]
    rows, cols = np.where(alpha > alpha_threshold)
    if len(rows) == 0:
        return None
    return (int(cols.min()), int(rows.min()), int(cols.max()) + 1, int(rows.max()) + 1)


def extract_vehicle(image_pil: Image.Image) -> Image.Image:
    """
    Enlève le fond de la photo du véhicule et rogne l'image autour du sujet.
    Retourne une image RGBA dont le fond est transparent.
    """
    logger.info("Suppression du fond et rognage (%dx%d)...", image_pil.width, image_pil.height)
    try:
        img_no_bg = remove(image_pil)
    except Exception as e:
        logger.error("Erreur lors de la suppression du fond : %s", e)
        raise ExternalServiceFailure(SERVICE_NAME, f"Suppression du fond impossible : {e}") from e

    img_no_bg = img_no_bg.convert("RGBA")
    bbox = get_alpha_bbox(img_no_bg)
    if not bbox:
        raise ExternalServiceFailure(SERVICE_NAME, "Aucun véhicule détecté dans l'image.")

    cutout = img_no_bg.crop(bbox)
    logger.info("Véhicule extrait : %dx%d", cutout.width, cutout.height)
    return cutout


async def extract_vehicle_async(image_pil: Image.Image) -> Image.Image:
    return await asyncio.to_thread(extract_vehicle, image_pil)
