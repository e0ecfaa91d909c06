import asyncio
import io
import logging
from typing import Optional

import google.generativeai as genai
from google.api_core import exceptions
from PIL import Image, UnidentifiedImageError

from .config import GEMINI_IMAGE_MODEL, VEHICLE_DIRECTIONS
from .errors import ExternalServiceFailure, QuotaExceeded

logger = logging.getLogger(__name__)

SERVICE_NAME = "fusion"

BLEND_PROMPT = (
    "You are a photorealistic image compositing expert. "
    "The provided image shows a vehicle that was pasted onto a background scene. "
    "Your task is to blend the vehicle into the scene so that it looks like it was photographed there. "
    "You MUST NOT change the shape, model, color, or position of the vehicle, and you MUST NOT change the background. "
    "Adjust the lighting, color temperature, reflections and perspective on the vehicle to match the environment, "
    "and add realistic contact shadows beneath the wheels so that the vehicle looks grounded. "
    "The final output must be only the complete, blended image."
)


def build_blend_prompt(direction: Optional[str] = None) -> str:
    """Construit le prompt de fusion, avec l'orientation souhaitée du véhicule."""
    if direction is None:
        return BLEND_PROMPT
    if direction not in VEHICLE_DIRECTIONS:
        raise ValueError(f"Orientation inconnue : {direction}")
    return f"{BLEND_PROMPT} The vehicle should appear {direction} relative to the camera."


def _first_image(response) -> Optional[Image.Image]:
    for part in response.candidates[0].content.parts:
        if part.inline_data:
            return Image.open(io.BytesIO(part.inline_data.data))
    return None


def blend_vehicle_into_scene(composite_image: Image.Image, api_key: str, prompt: Optional[str] = None) -> Image.Image:
    """
    Appelle l'API Gemini pour fusionner le composite aplati en une image photoréaliste.
    Lève QuotaExceeded ou ExternalServiceFailure en cas d'échec (aucune relance).
    """
    prompt = prompt or BLEND_PROMPT
    try:
        genai.configure(api_key=api_key)
        model = genai.GenerativeModel(GEMINI_IMAGE_MODEL)

        logger.info("Appel à l'API Gemini (%s) sur une image %dx%d...", GEMINI_IMAGE_MODEL, *composite_image.size)
        response = model.generate_content([prompt, composite_image.convert("RGB")])

    except exceptions.ResourceExhausted as e:
        logger.warning("Quota dépassé : %s", e)
        raise QuotaExceeded(SERVICE_NAME, f"Quota dépassé : {e}") from e
    except Exception as e:
        logger.error("Une erreur inattendue est survenue lors de l'appel à l'API Gemini : %s", e)
        raise ExternalServiceFailure(SERVICE_NAME, f"Erreur inattendue : {e}") from e

    if not response.candidates:
        raise ExternalServiceFailure(SERVICE_NAME, "La réponse de l'API ne contient aucun candidat.")

    try:
        final_image = _first_image(response)
    except (UnidentifiedImageError, OSError) as e:
        logger.error("Image retournée par Gemini illisible : %s", e)
        raise ExternalServiceFailure(SERVICE_NAME, f"Image retournée illisible : {e}") from e

    if final_image is None:
        try:
            error_text = response.text
        except ValueError:
            error_text = "réponse sans image ni texte"
        logger.error("Gemini a répondu sans image : '%s'", error_text)
        raise ExternalServiceFailure(SERVICE_NAME, f"L'IA a retourné un message mais pas d'image : {error_text}")

    logger.info("Fusion terminée : %dx%d", *final_image.size)
    return final_image


async def blend_vehicle_into_scene_async(composite_image: Image.Image, api_key: str,
                                         prompt: Optional[str] = None) -> Image.Image:
    return await asyncio.to_thread(blend_vehicle_into_scene, composite_image, api_key, prompt)
