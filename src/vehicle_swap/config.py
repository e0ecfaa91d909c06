"""
Fichier de configuration du moteur de placement de véhicule
"""

import os

from dotenv import load_dotenv

# ======================= Clés API =======================
GEMINI_API_KEY_ENV = "GEMINI_API_KEY"

# ======================= Gemini Configuration =======================
GEMINI_IMAGE_MODEL = "gemini-2.5-flash-image-preview"

# ======================= Indice de profondeur (halo) =======================
DEPTH_HINT_DEFAULTS = {
    "min_scale": 0.2,  # Échelle du halo en haut de l'image (objet lointain)
    "max_scale": 1.2,  # Échelle du halo en bas de l'image (objet proche)
    "min_rotation": 20.0,  # Inclinaison (degrés) pour un objet proche
    "max_rotation": 75.0,  # Inclinaison (degrés) pour un objet à l'horizon
}
HALO_BASE_WIDTH_RATIO = 0.25  # Largeur du halo = 25% de la largeur affichée
HALO_COLOR = (255, 0, 0)
HALO_OPACITY = 0.5

# ======================= Échelle utilisateur =======================
USER_SCALE_MIN = 0.1
USER_SCALE_MAX = 3.0
USER_SCALE_STEP = 0.05
DEFAULT_WIDTH_FRACTION = 0.25  # Le véhicule occupe ~1/4 de la largeur affichée

# ======================= UI Configuration =======================
RENDER_BOX_SIZE = (800, 500)  # Boîte d'affichage de l'arrière-plan (contain)
LETTERBOX_COLOR = (31, 41, 55)
ALPHA_THRESHOLD = 10  # Seuil d'opacité pour le rognage après détourage
ACCEPTED_IMAGE_TYPES = ["jpg", "jpeg", "png", "webp"]

VEHICLE_DIRECTIONS = [
    "facing opposite",
    "135 degree back right quarter",
    "facing right",
    "45 degree right",
    "facing strait forward",
    "45 left",
    "facing left",
    "135 degree back left quarter",
]

# ======================= Error Messages =======================
ERROR_MESSAGES = {
    "missing_api_key": f"La clé API '{GEMINI_API_KEY_ENV}' n'a pas été trouvée. Ajoutez-la à votre fichier .env.",
    "no_anchor": "Veuillez placer le véhicule sur la scène avant de lancer la génération.",
    "image_not_ready": "Veuillez uploader le véhicule et l'arrière-plan avant de lancer la génération.",
    "composite_in_progress": "Une génération est déjà en cours.",
    "decode_failure": "Le fichier fourni n'est pas une image valide.",
    "quota_exceeded": "Le service de fusion est surchargé. Veuillez réessayer dans une minute.",
}

# ======================= Helper Functions =======================
def get_depth_config(**overrides) -> dict:
    """Retourne la configuration du halo de profondeur, avec surcharges éventuelles."""
    unknown = set(overrides) - set(DEPTH_HINT_DEFAULTS)
    if unknown:
        raise ValueError(f"Options de profondeur inconnues : {sorted(unknown)}")
    config = dict(DEPTH_HINT_DEFAULTS)
    config.update({key: float(value) for key, value in overrides.items()})
    return config

def get_api_key() -> str:
    """Charge le fichier .env et retourne la clé API Gemini."""
    load_dotenv()
    api_key = os.getenv(GEMINI_API_KEY_ENV)
    if not api_key:
        raise RuntimeError(ERROR_MESSAGES["missing_api_key"])
    return api_key
