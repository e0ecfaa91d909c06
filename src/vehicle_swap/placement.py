import logging

from PIL import Image

from .config import DEFAULT_WIDTH_FRACTION, USER_SCALE_MAX, USER_SCALE_MIN
from .fit_mapping import Point

logger = logging.getLogger(__name__)


def clamp_user_scale(value: float) -> float:
    """Borne l'échelle choisie par l'utilisateur à [USER_SCALE_MIN, USER_SCALE_MAX]."""
    return min(max(float(value), USER_SCALE_MIN), USER_SCALE_MAX)


def default_user_scale(background_width: float, foreground_width: float) -> float:
    """
    Échelle initiale : le véhicule occupe environ un quart de la largeur de
    l'arrière-plan. Les deux largeurs sont natives, la proportion est donc la
    même à l'écran et dans le composite.
    """
    if foreground_width <= 0:
        return 1.0
    return clamp_user_scale((background_width * DEFAULT_WIDTH_FRACTION) / foreground_width)


def foreground_rect(foreground_size, native_anchor: Point, user_scale: float):
    """
    Rectangle (gauche, haut, droite, bas) du véhicule dans l'espace natif,
    centré sur le point de placement.
    """
    draw_width = foreground_size[0] * user_scale
    draw_height = foreground_size[1] * user_scale
    left = native_anchor.x - draw_width / 2
    top = native_anchor.y - draw_height / 2
    return (left, top, left + draw_width, top + draw_height)


def compose(background: Image.Image, foreground: Image.Image, native_anchor: Point, user_scale: float) -> Image.Image:
    """
    Aplatit le véhicule sur l'arrière-plan, à la résolution native de l'arrière-plan.
    Le véhicule est centré sur le point de placement ; les parties hors du
    cadre sont simplement rognées. La transparence du véhicule est conservée.
    Retourne une nouvelle image RGBA.
    """
    canvas = Image.new("RGBA", background.size, (0, 0, 0, 0))
    canvas.paste(background.convert("RGBA"), (0, 0))

    left, top, right, bottom = foreground_rect(foreground.size, native_anchor, user_scale)
    new_width = int(round(right - left))
    new_height = int(round(bottom - top))

    if new_width <= 0 or new_height <= 0:
        logger.warning("Taille du véhicule nulle (échelle %.3f), arrière-plan seul.", user_scale)
        return canvas

    resized_obj = foreground.convert("RGBA").resize((new_width, new_height), Image.Resampling.LANCZOS)

    paste_layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    paste_coords = (int(round(left)), int(round(top)))
    paste_layer.paste(resized_obj, paste_coords)

    logger.debug("Véhicule %dx%d collé en %s sur %dx%d", new_width, new_height, paste_coords, *canvas.size)
    return Image.alpha_composite(canvas, paste_layer)
