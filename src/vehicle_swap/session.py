"""
Session de placement : état mutable d'une suite d'actions utilisateur
(point de placement, échelle) et orchestration du compositeur.

    EMPTY  --set_anchor-->  PLACED  --request_composite-->  COMPOSING  -->  PLACED

Le point de placement est converti en espace natif dès qu'il est posé. Si la
boîte d'affichage change ensuite de taille, c'est la position à l'écran qui
est recalculée à partir du point natif, jamais l'inverse.
"""

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from PIL import Image

from .config import ERROR_MESSAGES
from .depth_estimation import DepthHint, HaloStyle, estimate_depth, halo_style, relative_y
from .errors import CompositeInProgress, ImageNotReady, NoAnchor
from .fit_mapping import Point, RenderBox, to_native_space, to_render_space
from .imaging import DecodedImage, decode_image_async
from .placement import clamp_user_scale, compose, default_user_scale

logger = logging.getLogger(__name__)

BlendFunction = Callable[[Image.Image], Awaitable[Image.Image]]


class SessionState(enum.Enum):
    EMPTY = "empty"
    PLACED = "placed"
    COMPOSING = "composing"


class ImageSlot:
    """
    Emplacement d'une image, avec un événement explicite "image prête".
    L'événement est recréé si la boucle asyncio change (un asyncio.run par
    réexécution Streamlit).
    """

    def __init__(self, name: str):
        self.name = name
        self.decoded: Optional[DecodedImage] = None
        self._ready: Optional[asyncio.Event] = None
        self._loop = None

    @property
    def is_ready(self) -> bool:
        return self.decoded is not None

    def _event(self) -> asyncio.Event:
        loop = asyncio.get_running_loop()
        if self._ready is None or self._loop is not loop:
            self._ready = asyncio.Event()
            self._loop = loop
            if self.decoded is not None:
                self._ready.set()
        return self._ready

    async def load(self, data: bytes, filename: Optional[str] = None,
                   transform: Optional[Callable[[Image.Image], Awaitable[Image.Image]]] = None) -> DecodedImage:
        """Décode les octets (puis applique transform, ex. l'extraction) et signale l'image prête."""
        self.clear()
        decoded = await decode_image_async(data, filename)
        if transform is not None:
            decoded = DecodedImage.from_pil(await transform(decoded.image))
        self.set(decoded)
        return decoded

    def set(self, decoded: DecodedImage):
        self.decoded = decoded
        if self._ready is not None:
            self._ready.set()

    def clear(self):
        self.decoded = None
        if self._ready is not None:
            self._ready.clear()

    async def wait_ready(self) -> DecodedImage:
        if self.decoded is None:
            await self._event().wait()
        return self.decoded


@dataclass(frozen=True)
class CompositeResult:
    image: Image.Image
    width: int
    height: int
    placement_version: int
    blended: Optional[Image.Image] = None


class PlacementSession:

    def __init__(self):
        self.background = ImageSlot("background")
        self.foreground = ImageSlot("foreground")
        self.state = SessionState.EMPTY
        self.render_box: Optional[RenderBox] = None
        self.anchor: Optional[Point] = None
        self.native_anchor: Optional[Point] = None
        self.user_scale = 1.0
        self.last_error: Optional[str] = None
        self.placement_version = 0
        self._in_flight = False

    def _touch(self):
        self.placement_version += 1

    def _refresh_state(self):
        if not self._in_flight:
            self.state = SessionState.PLACED if self.anchor is not None else SessionState.EMPTY

    # --- Chargement des images ---

    def load_new_background(self, decoded: Optional[DecodedImage] = None):
        """Un nouvel arrière-plan invalide le placement : retour à EMPTY."""
        self.background.clear()
        if decoded is not None:
            self.background.set(decoded)
        self.render_box = None
        self.anchor = None
        self.native_anchor = None
        self.last_error = None
        self.state = SessionState.EMPTY
        self._touch()

    async def load_background(self, data: bytes, filename: Optional[str] = None) -> DecodedImage:
        self.load_new_background()
        decoded = await self.background.load(data, filename)
        self.reset_user_scale()
        return decoded

    def load_foreground(self, decoded: DecodedImage):
        self.foreground.set(decoded)
        self.reset_user_scale()
        self._touch()

    async def load_vehicle(self, data: bytes, filename: Optional[str] = None, extract=None) -> DecodedImage:
        """Décode la photo du véhicule, en extrait le sujet via extract, puis règle l'échelle par défaut."""
        decoded = await self.foreground.load(data, filename, extract)
        self.reset_user_scale()
        self._touch()
        return decoded

    def reset_user_scale(self) -> float:
        """Échelle par défaut : le véhicule couvre un quart de la largeur de l'arrière-plan."""
        bg, fg = self.background.decoded, self.foreground.decoded
        if bg is not None and fg is not None:
            self.user_scale = default_user_scale(bg.native_width, fg.native_width)
        return self.user_scale

    # --- Géométrie ---

    def update_render_box(self, box_width, box_height) -> RenderBox:
        """Enregistre la taille d'affichage courante de l'arrière-plan."""
        bg = self.background.decoded
        if bg is None:
            raise ImageNotReady(ERROR_MESSAGES["image_not_ready"])

        self.render_box = RenderBox.contain(box_width, box_height, bg.native_width, bg.native_height)
        if self.native_anchor is not None:
            self.anchor = to_render_space(self.native_anchor, self.render_box, bg.native_width, bg.native_height)
        return self.render_box

    def set_anchor(self, point: Point):
        """Pose (ou remplace) le point de placement, en coordonnées d'affichage."""
        bg = self.background.decoded
        if bg is None or self.render_box is None:
            raise ImageNotReady(ERROR_MESSAGES["image_not_ready"])

        self.anchor = point
        self.native_anchor = to_native_space(point, self.render_box, bg.native_width, bg.native_height)
        self._refresh_state()
        self._touch()
        logger.debug("Point posé %s -> natif %s", point, self.native_anchor)

    def set_user_scale(self, value: float) -> float:
        self.user_scale = clamp_user_scale(value)
        self._touch()
        return self.user_scale

    def depth_hint(self) -> Optional[DepthHint]:
        if self.anchor is None or self.render_box is None:
            return None
        return estimate_depth(relative_y(self.anchor, self.render_box))

    def halo_style(self) -> Optional[HaloStyle]:
        fg = self.foreground.decoded
        if self.anchor is None or self.render_box is None or fg is None:
            return None
        return halo_style(self.anchor, self.render_box, fg.native_width, fg.native_height)

    # --- Composition ---

    def is_stale(self, result: CompositeResult) -> bool:
        return result.placement_version != self.placement_version

    async def request_composite(self, blend: Optional[BlendFunction] = None) -> CompositeResult:
        """
        Aplatit le véhicule sur l'arrière-plan puis, si fourni, appelle le
        service de fusion. Les appels concurrents sont refusés. La session
        revient toujours à PLACED, même en cas d'échec.
        """
        if self._in_flight:
            raise CompositeInProgress(ERROR_MESSAGES["composite_in_progress"])
        if self.anchor is None or self.native_anchor is None:
            self.last_error = ERROR_MESSAGES["no_anchor"]
            raise NoAnchor(self.last_error)
        if not (self.background.is_ready and self.foreground.is_ready):
            self.last_error = ERROR_MESSAGES["image_not_ready"]
            raise ImageNotReady(self.last_error)

        self._in_flight = True
        self.state = SessionState.COMPOSING
        self.last_error = None
        version = self.placement_version
        background = self.background.decoded.image
        foreground = self.foreground.decoded.image
        native_anchor, user_scale = self.native_anchor, self.user_scale

        try:
            composite = await asyncio.to_thread(compose, background, foreground, native_anchor, user_scale)
            blended = await blend(composite) if blend is not None else None
        except Exception as e:
            self.last_error = str(e)
            raise
        finally:
            self._in_flight = False
            self.state = SessionState.PLACED if self.anchor is not None else SessionState.EMPTY

        logger.info("Composite %dx%d généré (version %d)", composite.width, composite.height, version)
        return CompositeResult(composite, composite.width, composite.height, version, blended)
