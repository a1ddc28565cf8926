"""
VoiceFeed Streamlit UI - main entry point.

Run with: ``streamlit run voicefeed/ui/app.py``
"""

import streamlit as st

from voicefeed.core.config import get_settings
from voicefeed.core.exceptions import VoiceFeedError
from voicefeed.core.log import configure_logging
from voicefeed.ui.context import get_context
from voicefeed.ui.notify import user_action

# ---------------------------------------------------------------------------
# Page config (must be first Streamlit call)
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title="VoiceFeed",
    page_icon="\U0001f399️",
    layout="centered",
)

configure_logging(get_settings().log_level)

ctx = get_context()

if ctx.session.loading:
    st.info("Loading...")
    st.stop()

# ---------------------------------------------------------------------------
# Navigation (multipage)
# ---------------------------------------------------------------------------
login_page = st.Page("pages/login.py", title="Sign in", icon="\U0001f511", default=True)
register_page = st.Page("pages/register.py", title="Register", icon="\U0001f4dd")
feed_page = st.Page("pages/feed.py", title="Feed", icon="\U0001f3e0", default=True)
saved_page = st.Page("pages/saved.py", title="Saved", icon="\U0001f516")
profile_page = st.Page("pages/profile.py", title="Profile", icon="\U0001f464")

if ctx.session.session is None:
    # Signed out: drop any per-user view state left from a previous session
    for key in ("_username", "_feed_loaded"):
        st.session_state.pop(key, None)
    ctx.player.stop()
    nav = st.navigation([login_page, register_page])
    nav.run()
    st.stop()

# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------
if "_username" not in st.session_state:
    try:
        st.session_state["_username"] = ctx.run(ctx.feed.fetch_profile(ctx.user_id)).username
    except VoiceFeedError:
        st.session_state["_username"] = ctx.session.user.email or "you"

with st.sidebar:
    st.title("\U0001f399️ VoiceFeed")
    st.caption(f"Signed in as **{st.session_state['_username']}**")
    if st.button("Sign out", use_container_width=True):
        with user_action("Failed to sign out"):
            ctx.run(ctx.session.sign_out())
            st.rerun()

nav = st.navigation([feed_page, saved_page, profile_page])
nav.run()
