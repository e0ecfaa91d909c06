import streamlit as st
from PIL import ImageDraw, ImageOps
import asyncio
import logging
import sys
import os
from streamlit_image_coordinates import streamlit_image_coordinates

# Ajout du chemin vers les modules personnalisés
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), 'src')))
from vehicle_swap.config import (
    ACCEPTED_IMAGE_TYPES, ERROR_MESSAGES, LETTERBOX_COLOR, RENDER_BOX_SIZE,
    USER_SCALE_MAX, USER_SCALE_MIN, USER_SCALE_STEP, VEHICLE_DIRECTIONS, get_api_key,
)
from vehicle_swap.depth_estimation import draw_depth_halo
from vehicle_swap.errors import PlacementError, QuotaExceeded
from vehicle_swap.fit_mapping import Point, is_inside_image
from vehicle_swap.harmonization import blend_vehicle_into_scene_async, build_blend_prompt
from vehicle_swap.imaging import encode_png
from vehicle_swap.placement import compose
from vehicle_swap.segmentation import extract_vehicle_async
from vehicle_swap.session import PlacementSession, SessionState

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

# --- Configuration et Chargement des Clés API ---
try:
    GEMINI_API_KEY = get_api_key()
except RuntimeError as e:
    st.error(f"Erreur : {e}")
    st.stop()

# --- Fonctions de rappel (Callbacks) ---

def reset_app_state():
    """Réinitialise toute l'application."""
    keys_to_clear = list(st.session_state.keys())
    for key in keys_to_clear:
        del st.session_state[key]

def on_scale_change():
    """Répercute le curseur d'échelle sur la session."""
    st.session_state.session.set_user_scale(st.session_state.scale_slider)

# --- Fonctions Utilitaires ---

def render_preview(session: PlacementSession):
    """Arrière-plan affiché en "contain" dans la boîte, avec halo, véhicule et repère."""
    bg = session.background.decoded
    preview = ImageOps.pad(bg.image.convert("RGB"), RENDER_BOX_SIZE, color=LETTERBOX_COLOR)

    style = session.halo_style()
    if style is not None:
        preview = draw_depth_halo(preview, style)

    fg = session.foreground.decoded
    if session.anchor is not None and fg is not None:
        render_ratio = session.render_box.rendered_width / bg.native_width
        preview = compose(preview, fg.image, session.anchor, session.user_scale * render_ratio)

        draw = ImageDraw.Draw(preview)
        x, y = session.anchor.x, session.anchor.y
        draw.ellipse([x - 6, y - 6, x + 6, y + 6], fill=(239, 68, 68), outline="white", width=2)

    return preview.convert("RGB")

# --- Interface Streamlit ---
st.set_page_config(layout="wide", page_title="Échange d'arrière-plan de véhicule")

if 'session' not in st.session_state: st.session_state.session = PlacementSession()
session = st.session_state.session

st.title("🚗 Échange d'arrière-plan de véhicule")
st.caption("Uploadez un véhicule et un arrière-plan, placez et redimensionnez le véhicule, puis laissez l'IA fusionner la scène.")

# --- Barre Latérale (Sidebar) ---
st.sidebar.header("Commandes")
st.sidebar.button("Recommencer depuis le début 🔄", on_click=reset_app_state, use_container_width=True, type="primary")
vehicle_file = st.sidebar.file_uploader("1. Choisissez la photo du véhicule", type=ACCEPTED_IMAGE_TYPES)
background_file = st.sidebar.file_uploader("2. Choisissez l'arrière-plan", type=ACCEPTED_IMAGE_TYPES)

if vehicle_file and st.session_state.get('vehicle_file_name') != vehicle_file.name:
    st.session_state.vehicle_file_name = vehicle_file.name
    with st.spinner("Extraction du véhicule..."):
        try:
            asyncio.run(session.load_vehicle(vehicle_file.getvalue(), vehicle_file.name, extract_vehicle_async))
            st.session_state.scale_slider = session.user_scale
        except PlacementError as e:
            st.error(f"Échec de l'extraction du véhicule : {e}")
    st.session_state.pop('result', None)

if background_file and st.session_state.get('background_file_name') != background_file.name:
    st.session_state.background_file_name = background_file.name
    try:
        asyncio.run(session.load_background(background_file.getvalue(), background_file.name))
        session.update_render_box(*RENDER_BOX_SIZE)
        st.session_state.scale_slider = session.user_scale
    except PlacementError as e:
        session.load_new_background()
        st.error(f"{ERROR_MESSAGES['decode_failure']} {e}")
    st.session_state.pop('last_click', None)
    st.session_state.pop('result', None)

if session.foreground.is_ready:
    st.sidebar.divider()
    st.sidebar.subheader("Votre véhicule")
    st.sidebar.image(session.foreground.decoded.image, use_container_width=True)
    st.sidebar.slider(
        "Ajuster la taille du véhicule", USER_SCALE_MIN, USER_SCALE_MAX,
        step=USER_SCALE_STEP, key="scale_slider", on_change=on_scale_change,
    )
    st.sidebar.selectbox("Orientation souhaitée (optionnel)", ["Aucune"] + VEHICLE_DIRECTIONS, key="direction")

# --- Affichage Principal ---
if not session.background.is_ready or not session.foreground.is_ready:
    st.info("👋 Bienvenue ! Veuillez uploader la photo du véhicule et l'arrière-plan.")
else:
    st.subheader("Cliquez sur la scène pour placer le véhicule")
    coordinates = streamlit_image_coordinates(render_preview(session), key="scene_click", width=RENDER_BOX_SIZE[0])

    if coordinates is not None and coordinates != st.session_state.get('last_click'):
        st.session_state.last_click = coordinates
        point = Point(float(coordinates["x"]), float(coordinates["y"]))
        if not is_inside_image(point, session.render_box):
            st.warning("Le point est en dehors de l'image : le véhicule sera partiellement rogné.")
        session.set_anchor(point)
        st.rerun()

    hint = session.depth_hint()
    if hint is not None:
        c1, c2 = st.columns(2)
        c1.write(f"**Position (native) :** ({session.native_anchor.x:.0f}, {session.native_anchor.y:.0f})")
        c2.write(f"**Profondeur estimée :** échelle {hint.scale:.2f}, inclinaison {hint.rotation_degrees:.0f}°")
    else:
        st.info("🖱️ Cliquez sur l'arrière-plan pour positionner le véhicule.")

    generate_disabled = session.state is not SessionState.PLACED
    if st.button("🚀 Générer l'image", use_container_width=True, type="primary", disabled=generate_disabled):
        direction = st.session_state.get('direction')
        prompt = build_blend_prompt(None if direction in (None, "Aucune") else direction)

        async def blend(composite):
            return await blend_vehicle_into_scene_async(composite, GEMINI_API_KEY, prompt)

        with st.spinner("Fusion de la scène avec l'API Gemini en cours..."):
            try:
                st.session_state.result = asyncio.run(session.request_composite(blend))
                st.success("Fusion terminée !")
            except QuotaExceeded:
                st.error(ERROR_MESSAGES["quota_exceeded"])
            except PlacementError as e:
                st.error(f"Une erreur est survenue pendant la génération : {e}")

    result = st.session_state.get('result')
    if result is not None and not session.is_stale(result):
        st.subheader("Comparaison Avant / Après Fusion")
        c1, c2 = st.columns(2)
        c1.image(result.image, caption=f"Composite ({result.width}x{result.height})", use_container_width=True)
        if result.blended is not None:
            c2.image(result.blended, caption="Résultat généré", use_container_width=True)
            st.download_button("💾 Télécharger le résultat", encode_png(result.blended), "resultat_fusion.png", "image/png", use_container_width=True)
