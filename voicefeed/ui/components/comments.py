"""
Comment thread component shown under an expanded post.
"""

import streamlit as st

from voicefeed.core.models import Author, VoicePost
from voicefeed.ui.context import AppContext
from voicefeed.ui.notify import user_action


def render_comments(ctx: AppContext, post: VoicePost) -> None:
    """Render loaded comments for *post*, oldest first, plus the comment input."""
    comments = ctx.feed_state.comments.get(post.id, [])

    if not comments:
        st.caption("No comments yet")
    for comment in comments:
        col_avatar, col_body = st.columns([1, 10])
        with col_avatar:
            if comment.author.avatar_url:
                st.image(ctx.feed.avatar_url(comment.author.avatar_url), width=32)
            else:
                st.markdown(f"**{comment.author.initial}**")
        with col_body:
            st.markdown(
                f"**{comment.author.username}** "
                f"<span style='color:gray;font-size:0.8em'>"
                f"{comment.created_at:%Y-%m-%d}</span>",
                unsafe_allow_html=True,
            )
            st.write(comment.content)

    if ctx.user_id is None:
        return

    with st.form(f"comment_form_{post.id}", clear_on_submit=True):
        text = st.text_input(
            "Comment",
            label_visibility="collapsed",
            placeholder="Add a comment...",
        )
        if st.form_submit_button("Post"):
            author = Author(username=st.session_state.get("_username", "you"))
            with user_action("Failed to add comment"):
                ctx.run(ctx.feed_state.add_comment(post.id, ctx.user_id, text, author))
                st.rerun()
