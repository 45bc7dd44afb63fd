# VeganCheck.py
"""
Streamlit web app: is this product vegan?

Type or paste an ingredient list, or scan a photo of the label. The
app finds the E-numbers in the text and checks every one of them
against the bundled reference table.

Run with:  streamlit run VeganCheck.py
"""

import json
import logging

import streamlit as st

from enumber_checker import config
from enumber_checker.check_session import CheckSession
from enumber_checker.classifier import classification_to_dict
from enumber_checker.codes import InputChannel
from enumber_checker.errors import EnumberCheckError
from enumber_checker.ocr_engine import create_engine
from enumber_checker.preprocessing import get_preprocessing_stats, preprocess_array
from enumber_checker.utils import get_image_stats, load_image_from_bytes


# LOGGING CONFIGURATION


logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
logger = logging.getLogger(__name__)

SESSION_KEY = "check_session"
TEXT_KEY = "ingredients_text"
IMAGE_KEY = "label_image"


# STREAMLIT PAGE CONFIGURATION

st.set_page_config(
    page_title="Vegan E-number Checker",
    page_icon="🌱",
    layout="centered",
    initial_sidebar_state="collapsed",
)


# CUSTOM CSS STYLING


st.markdown("""
    <style>
        .title {
            font-size: 38px;
            font-weight: bold;
            color: #10b981;
            margin-bottom: 10px;
        }

        .vegan-box {
            padding: 1.5rem;
            border-radius: 10px;
            background: #d1fae5;
            border: 2px solid #10b981;
            text-align: center;
        }

        .not-vegan-box {
            padding: 1.5rem;
            border-radius: 10px;
            background: #fee2e2;
            border: 2px solid #ef4444;
            text-align: center;
        }

        .code-chip {
            display: inline-block;
            padding: 2px 8px;
            margin: 2px;
            border-radius: 4px;
            font-family: 'Courier New', monospace;
            font-size: 14px;
        }
        .code-vegan { background: #dcfce7; color: #166534; }
        .code-not-vegan { background: #fee2e2; color: #991b1b; }

        .footer {
            text-align: center;
            color: #666;
            padding: 20px;
            font-size: 13px;
            border-top: 1px solid #ddd;
            margin-top: 40px;
        }
    </style>
""", unsafe_allow_html=True)


# SESSION & CALLBACKS


def get_session() -> CheckSession:
    """One CheckSession per browser session."""
    if SESSION_KEY not in st.session_state:
        st.session_state[SESSION_KEY] = CheckSession(engine_factory=create_engine)
        st.session_state[TEXT_KEY] = ""
    return st.session_state[SESSION_KEY]


def on_text_change() -> None:
    session = get_session()
    try:
        session.set_text(st.session_state[TEXT_KEY])
    except EnumberCheckError as e:
        session.error = e.user_message


def on_scan_image() -> None:
    session = get_session()
    uploaded = st.session_state.get(IMAGE_KEY)
    if uploaded is None:
        session.error = "Please choose an image first."
        return

    try:
        with st.spinner("Processing image..."):
            session.upload_image(uploaded.getvalue())
        st.session_state[TEXT_KEY] = session.text
    except EnumberCheckError as e:
        logger.error(f"Image scan failed: {e}")


def on_check() -> None:
    session = get_session()
    try:
        session.submit()
    except EnumberCheckError as e:
        logger.info(f"Check not completed: {e}")


def on_reset() -> None:
    get_session().reset()
    st.session_state[TEXT_KEY] = ""


# DISPLAY HELPERS


def display_code_chips(session: CheckSession) -> None:
    """Colour each found code by what the reference table says."""
    if not session.codes:
        return

    chips = []
    for code in session.codes:
        entry = session.table.lookup(code)
        css = "code-vegan" if entry is not None and entry.vegan else "code-not-vegan"
        chips.append(f'<span class="code-chip {css}">{code}</span>')

    st.markdown("**Found E-numbers:**")
    st.markdown(" ".join(chips), unsafe_allow_html=True)


def display_result(session: CheckSession) -> None:
    """Verdict screen with the annotated code list."""
    result = session.classification

    if result.is_vegan:
        st.markdown("""
        <div class="vegan-box">
            <h2>Yes, product <b style="color: #10b981;">IS</b> vegan</h2>
        </div>
        """, unsafe_allow_html=True)
    else:
        st.markdown("""
        <div class="not-vegan-box">
            <h2>No, product is <b style="color: #ef4444;">NOT</b> vegan</h2>
        </div>
        """, unsafe_allow_html=True)

    st.write("")
    st.subheader("E-numbers found")
    for a in result.annotations:
        mark = "✅" if a.vegan else "❌"
        st.markdown(f"{mark} `{a.code}` - {a.name}")

    if any(not a.known for a in result.annotations):
        st.caption("Unknown E-numbers are treated as not vegan.")

    st.write("---")

    col1, col2 = st.columns(2)
    with col1:
        st.button("Check another product", on_click=on_reset,
                  type="primary", use_container_width=True)
    with col2:
        out = classification_to_dict(result)
        out["input"] = session.channel.value
        st.download_button(
            "📥 Download JSON",
            json.dumps(out, indent=2),
            file_name="vegan_check.json",
            mime="application/json",
            use_container_width=True,
        )


def display_image_stats(image_bytes: bytes) -> None:
    """Original/processed previews with basic stats."""
    try:
        img = load_image_from_bytes(image_bytes)
        processed = preprocess_array(img)
    except EnumberCheckError as e:
        st.error(f"❌ {e.user_message}")
        return

    stats = get_image_stats(img)
    pstats = get_preprocessing_stats(processed.pixels)

    col1, col2 = st.columns(2)
    with col1:
        st.image(image_bytes, caption="Uploaded label", use_container_width=True)
        st.caption(f"Shape: {stats.get('shape')} | Alpha: {stats.get('has_alpha')}")
    with col2:
        st.image(processed.pixels, channels="BGR", caption="Prepared for OCR",
                 use_container_width=True)
        st.caption(
            f"{processed.width}x{processed.height} | "
            f"Black: {pstats.get('black_ratio', 0) * 100:.1f}%"
        )


# MAIN APPLICATION


def main():
    """Main Streamlit application."""
    session = get_session()

    st.markdown("<h1 class='title'>🌱 Vegan E-number Checker</h1>", unsafe_allow_html=True)

    if session.is_resolved:
        display_result(session)
        return

    st.text_area(
        "Ingredients Text",
        key=TEXT_KEY,
        on_change=on_text_change,
        placeholder="Type or paste ingredients",
        height=150,
        help="Enter the ingredients text or upload an image to scan for E-numbers",
    )

    uploaded = st.file_uploader(
        "Or upload a photo of the ingredient list",
        type=["png", "jpg", "jpeg", "webp"],
        key=IMAGE_KEY,
        disabled=session.is_processing,
    )

    if uploaded is not None:
        st.button("🔍 Scan image", on_click=on_scan_image,
                  disabled=session.is_processing, use_container_width=True)

        with st.expander("🔬 Show preprocessing preview", expanded=False):
            display_image_stats(uploaded.getvalue())

    if session.error:
        st.error(session.error)

    display_code_chips(session)

    if session.text and session.channel is InputChannel.IMAGE:
        with st.expander("📝 Recognized text", expanded=False):
            st.markdown(session.highlighted_text().replace("\n", "  \n"))

    st.button("Check", on_click=on_check, type="primary", use_container_width=True)

    st.markdown("""
    <div class="footer">
        Checks E-numbers only. Unknown additives are treated as not vegan.
    </div>
    """, unsafe_allow_html=True)


if __name__ == "__main__":
    main()
