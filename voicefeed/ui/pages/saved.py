"""
Saved posts page - grid of the posts the current user bookmarked.
"""

import streamlit as st

from voicefeed.ui.components.audio import play_button, render_active_audio
from voicefeed.ui.context import get_context
from voicefeed.ui.notify import user_action

ctx = get_context()

st.header("Saved Posts")

saved = []
with st.spinner("Loading saved posts..."), user_action("Failed to load saved posts"):
    saved = ctx.run(ctx.feed.fetch_saved_posts(ctx.user_id))

if not saved:
    st.info("No saved posts yet. Posts you save will appear here.")
    st.stop()

COLUMNS = 3
for start in range(0, len(saved), COLUMNS):
    cols = st.columns(COLUMNS)
    for col, post in zip(cols, saved[start : start + COLUMNS], strict=False):
        with col, st.container(border=True):
            if post.image_url:
                st.image(ctx.feed.image_url(post.image_url), use_container_width=True)
            else:
                st.markdown("### 🎙️")
            st.markdown(f"**{post.title}**")
            if post.description:
                st.caption(post.description)
            st.caption(f"By {post.author.username}")
            play_button(ctx.player, ctx.run, post.id, post.audio_url, key=f"saved_play_{post.id}")
            render_active_audio(ctx.player, post.id)
