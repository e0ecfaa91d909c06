"""
Correspondance entre l'espace d'affichage et l'espace natif d'une image
affichée en mode "contain" (mise à l'échelle uniforme, centrée, avec des
bandes de remplissage sur un des deux axes).

Aucun arrondi n'est fait ici : les coordonnées restent en flottants jusqu'à
leur consommation finale par le compositeur.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class RenderBox:
    """
    Boîte dans laquelle l'arrière-plan est affiché.

    box_width / box_height : taille réelle du conteneur.
    rendered_width / rendered_height : zone occupée par l'image, sans les bandes.
    """
    box_width: float
    box_height: float
    rendered_width: float
    rendered_height: float

    @classmethod
    def contain(cls, box_width, box_height, native_width, native_height):
        rendered_width, rendered_height = contain_fit(native_width, native_height, box_width, box_height)
        return cls(box_width, box_height, rendered_width, rendered_height)

    @property
    def padding_x(self) -> float:
        return (self.box_width - self.rendered_width) / 2

    @property
    def padding_y(self) -> float:
        return (self.box_height - self.rendered_height) / 2


def _check_dimensions(**dims):
    for name, value in dims.items():
        if value <= 0:
            raise ValueError(f"Dimension invalide pour la correspondance : {name}={value}")


def contain_fit(native_width, native_height, box_width, box_height):
    """Retourne (largeur, hauteur) de l'image affichée en "contain" dans la boîte."""
    _check_dimensions(native_width=native_width, native_height=native_height,
                      box_width=box_width, box_height=box_height)

    native_aspect = native_width / native_height
    box_aspect = box_width / box_height

    if native_aspect > box_aspect:
        # Image plus large que la boîte : bandes en haut et en bas
        return box_width, box_width / native_aspect
    return box_height * native_aspect, box_height


def to_native_space(point: Point, render_box: RenderBox, native_width, native_height) -> Point:
    """
    Convertit un point de l'espace d'affichage vers l'espace natif de l'image.
    Un point situé dans les bandes donne des coordonnées hors de l'image.
    """
    _check_dimensions(native_width=native_width, native_height=native_height,
                      rendered_width=render_box.rendered_width, rendered_height=render_box.rendered_height)

    img_x = point.x - render_box.padding_x
    img_y = point.y - render_box.padding_y

    rel_x = img_x / render_box.rendered_width
    rel_y = img_y / render_box.rendered_height

    return Point(rel_x * native_width, rel_y * native_height)


def to_render_space(point: Point, render_box: RenderBox, native_width, native_height) -> Point:
    """Opération inverse de to_native_space."""
    _check_dimensions(native_width=native_width, native_height=native_height)

    rel_x = point.x / native_width
    rel_y = point.y / native_height

    return Point(
        rel_x * render_box.rendered_width + render_box.padding_x,
        rel_y * render_box.rendered_height + render_box.padding_y,
    )


def is_inside_image(point: Point, render_box: RenderBox) -> bool:
    """Indique si le point tombe sur l'image et non dans les bandes."""
    img_x = point.x - render_box.padding_x
    img_y = point.y - render_box.padding_y
    return 0 <= img_x <= render_box.rendered_width and 0 <= img_y <= render_box.rendered_height
