import logging

import streamlit as st

from backend.dimensions import ASPECT_RATIOS
from backend.logging_config import setup_logging
from backend.model import MAX_IMAGE_COUNT, MIN_IMAGE_COUNT, MODELS
from backend.utils import download_filename, random_prompt
from config.settings import settings
from frontend.client import (
    FAILED,
    PENDING,
    SUCCEEDED,
    BatchView,
    decode_data_url,
    load_image,
    stream_batch,
)

setup_logging()
logger = logging.getLogger(__name__)

THEMES = {
    "default": "",
    "black": """
<style>
.stApp, [data-testid="stSidebar"] { background-color: #000000; color: #f5f5f5; }
.stApp h1, .stApp p, .stApp label { color: #f5f5f5; }
</style>
""",
}


def render_theme(theme: str) -> None:
    css = THEMES.get(theme, "")
    if css:
        st.markdown(css, unsafe_allow_html=True)


def render_card(slot, card: dict, batch_id: str) -> None:
    """Draw one card into its placeholder. Called again on every update."""
    with slot.container():
        if card["status"] == PENDING:
            st.info("⏳ Generating...")
        elif card["status"] == FAILED:
            st.error(f"🪄 {card.get('error_message') or 'Generation failed!'}")
        elif card["status"] == SUCCEEDED and card.get("image_url"):
            img_bytes = decode_data_url(card["image_url"])
            try:
                image = load_image(img_bytes)
            except OSError as e:
                logger.error(f"[Frontend] Card {card['id']} returned unreadable image data: {e}")
                st.error("🪄 Received data is not a readable image")
                return
            st.image(image, use_container_width=True)
            st.download_button(
                "⬇️ Download",
                data=img_bytes,
                file_name=download_filename(),
                mime="image/png",
                key=f"download_{batch_id}_{card['id']}",
            )


def make_slots(count: int):
    cols = st.columns(min(max(count, 1), 2))
    return [cols[i % len(cols)].empty() for i in range(count)]


def fill_prompt() -> None:
    st.session_state["prompt"] = random_prompt()


def toggle_theme() -> None:
    st.session_state["theme"] = "default" if st.session_state["theme"] == "black" else "black"


# ==========================
# Page config
# ==========================
st.set_page_config(page_title="Generate Image", page_icon="🎨", layout="wide")

# ==========================
# State
# ==========================
if "view" not in st.session_state:
    st.session_state["view"] = BatchView()
if "theme" not in st.session_state:
    st.session_state["theme"] = "default"
if "prompt" not in st.session_state:
    st.session_state["prompt"] = ""

view: BatchView = st.session_state["view"]
theme: str = st.session_state["theme"]

render_theme(theme)

with st.sidebar:
    st.button(
        "Reset Theme" if theme == "black" else "Black Theme",
        on_click=toggle_theme,
        use_container_width=True,
    )
    st.markdown("---")
    st.write("🔗 Backend:", settings.BACKEND_URL)

st.title("🎨 Generate Image")

# ==========================
# Form
# ==========================
st.text_area(
    "Prompt",
    key="prompt",
    placeholder="Describe your imagination in detail...",
    height=120,
)
st.button("🎲 Random prompt", on_click=fill_prompt)

col_model, col_count, col_ratio, col_go = st.columns(4)
with col_model:
    model = st.selectbox(
        "Model",
        options=[""] + list(MODELS),
        format_func=lambda v: MODELS.get(v, "Select Model"),
    )
with col_count:
    count = st.selectbox(
        "Image Count",
        options=list(range(MIN_IMAGE_COUNT, MAX_IMAGE_COUNT + 1)),
        format_func=lambda n: f"{n} Image" if n == 1 else f"{n} Images",
    )
with col_ratio:
    aspect_ratio = st.selectbox(
        "Aspect Ratio",
        options=list(ASPECT_RATIOS),
        format_func=lambda r: ASPECT_RATIOS[r],
    )
with col_go:
    st.write("")
    submitted = st.button("🪄 Generate", type="primary", use_container_width=True)

prompt: str = st.session_state["prompt"]

# ==========================
# Gallery
# ==========================
if submitted and (not model or not prompt.strip()):
    st.warning("⚠️ Please enter a prompt and select a model.")
    submitted = False

if submitted:
    batch_id = view.start(count)
    slots = make_slots(count)
    logger.info(f"[Frontend] Submitting batch {batch_id}: {count} x {model} ({aspect_ratio})")
    view.follow(
        stream_batch(prompt, model, count, aspect_ratio, batch_id),
        lambda card: render_card(slots[card["id"]], card, batch_id),
    )
else:
    cards = view.ordered()
    if cards:
        slots = make_slots(len(cards))
        for slot, card in zip(slots, cards):
            render_card(slot, card, view.batch_id)
