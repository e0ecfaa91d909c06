# Fichier : src/vehicle_swap/depth_estimation.py
import math
from dataclasses import dataclass
from typing import Optional

from PIL import Image, ImageDraw, ImageFilter

from .config import HALO_BASE_WIDTH_RATIO, HALO_COLOR, HALO_OPACITY, get_depth_config
from .fit_mapping import Point, RenderBox


@dataclass(frozen=True)
class DepthHint:
    scale: float
    rotation_degrees: float


@dataclass(frozen=True)
class HaloStyle:
    """Géométrie du halo au sol, en coordonnées d'affichage."""
    center: Point
    width: float
    height: float
    scale: float
    rotation_degrees: float

    @property
    def projected_width(self) -> float:
        return self.width * self.scale

    @property
    def projected_height(self) -> float:
        # Une inclinaison autour de l'axe horizontal écrase l'ellipse verticalement
        return self.height * self.scale * math.cos(math.radians(self.rotation_degrees))


def _clamp01(value):
    return min(max(value, 0.0), 1.0)


def relative_y(anchor: Point, render_box: RenderBox) -> float:
    """
    Position verticale normalisée du point de placement sur l'image, bornée
    à [0, 1]. Le point est en coordonnées de boîte : on retire la bande du haut.
    """
    if render_box.rendered_height <= 0:
        return 0.0
    return _clamp01((anchor.y - render_box.padding_y) / render_box.rendered_height)


def estimate_depth(relative_y: float, config: Optional[dict] = None) -> DepthHint:
    """
    Déduit une échelle et une inclinaison à partir de la position verticale.
    Plus le point est bas dans l'image, plus l'objet est proche : il est plus
    grand et moins incliné. Purement cosmétique.
    """
    config = config or get_depth_config()
    ry = _clamp01(relative_y)

    # Interpolation écrite pour être exacte aux deux extrémités
    scale = config["min_scale"] * (1 - ry) + config["max_scale"] * ry
    rotation = config["max_rotation"] * (1 - ry) + config["min_rotation"] * ry

    return DepthHint(scale=scale, rotation_degrees=rotation)


def halo_style(anchor: Point, render_box: RenderBox, foreground_width, foreground_height,
               config: Optional[dict] = None) -> HaloStyle:
    """Calcule le style du halo affiché sous le véhicule placé."""
    hint = estimate_depth(relative_y(anchor, render_box), config)

    aspect_ratio = foreground_width / foreground_height
    base_width = render_box.rendered_width * HALO_BASE_WIDTH_RATIO
    base_height = base_width / aspect_ratio

    return HaloStyle(
        center=anchor,
        width=base_width,
        height=base_height,
        scale=hint.scale,
        rotation_degrees=hint.rotation_degrees,
    )


def draw_depth_halo(preview: Image.Image, style: HaloStyle, color=HALO_COLOR, opacity=HALO_OPACITY) -> Image.Image:
    """Dessine le halo (ellipse rouge dégradée) sur une copie de l'aperçu."""
    base = preview.copy().convert("RGBA")

    half_w = style.projected_width / 2
    half_h = style.projected_height / 2
    if half_w < 1 or half_h < 1:
        return base

    layer = Image.new("RGBA", base.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)

    # Dégradé radial approché par des ellipses concentriques, opaque au centre
    steps = 12
    for i in range(steps, 0, -1):
        ratio = i / steps
        alpha = int(255 * opacity * (1 - ratio / 0.7)) if ratio < 0.7 else 0
        box = [
            style.center.x - half_w * ratio, style.center.y - half_h * ratio,
            style.center.x + half_w * ratio, style.center.y + half_h * ratio,
        ]
        draw.ellipse(box, fill=(*color, min(alpha, 255)))

    layer = layer.filter(ImageFilter.GaussianBlur(radius=max(1, half_h / 4)))
    return Image.alpha_composite(base, layer)
