"""
Feed page - every published voice post, newest first.
"""

import streamlit as st

from voicefeed.ui.components.create_post import create_post_dialog
from voicefeed.ui.components.post_card import render_post_card
from voicefeed.ui.context import get_context
from voicefeed.ui.notify import user_action

ctx = get_context()

col_title, col_new, col_refresh = st.columns([5, 2, 1])
with col_title:
    st.header("Feed")
with col_new:
    st.markdown("")  # vertical spacer
    if st.button("🎙️ New post", type="primary", use_container_width=True):
        create_post_dialog()
with col_refresh:
    st.markdown("")
    refresh = st.button("↻", key="feed_refresh", help="Refresh")

if refresh or not st.session_state.get("_feed_loaded"):
    with st.spinner("Loading posts..."), user_action("Failed to load posts"):
        ctx.run(ctx.feed_state.refresh(ctx.user_id))
        st.session_state["_feed_loaded"] = True

posts = ctx.feed_state.posts
if not posts:
    st.info("No posts yet. Record the first one!")
    st.stop()

for post in posts:
    render_post_card(ctx, post)
