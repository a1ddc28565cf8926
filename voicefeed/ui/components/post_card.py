"""
Post card display component.
"""

import streamlit as st

from voicefeed.core.models import VoicePost
from voicefeed.ui.components.audio import play_button, render_active_audio
from voicefeed.ui.components.comments import render_comments
from voicefeed.ui.context import AppContext
from voicefeed.ui.notify import notify_success, user_action
from voicefeed.ui.utils import time_ago


def _render_author(ctx: AppContext, post: VoicePost) -> None:
    col_avatar, col_name = st.columns([1, 8])
    with col_avatar:
        if post.author.avatar_url:
            st.image(ctx.feed.avatar_url(post.author.avatar_url), width=40)
        else:
            st.markdown(f"### {post.author.initial}")
    with col_name:
        st.markdown(f"**{post.author.username}**")
        st.caption(time_ago(post.created_at))


def render_post_card(ctx: AppContext, post: VoicePost) -> None:
    """Render one post with play, like, comment, save, share and delete controls.

    Args:
        ctx: The browser session's services.
        post: Post to render.
    """
    user_id = ctx.user_id

    with st.container(border=True):
        _render_author(ctx, post)

        st.subheader(post.title)
        if post.description:
            st.write(post.description)
        if post.image_url:
            st.image(ctx.feed.image_url(post.image_url), use_container_width=True)

        cols = st.columns(6)
        with cols[0]:
            play_button(ctx.player, ctx.run, post.id, post.audio_url, key=f"play_{post.id}")
        with cols[1]:
            heart = "❤️" if post.liked else "🤍"
            if st.button(f"{heart} {post.like_count}", key=f"like_{post.id}"):
                with user_action("Failed to update like"):
                    ctx.run(ctx.feed_state.toggle_like(post.id, user_id))
                st.rerun()
        with cols[2]:
            comments_key = f"_show_comments_{post.id}"
            if st.button(f"💬 {post.comment_count}", key=f"comments_{post.id}"):
                st.session_state[comments_key] = not st.session_state.get(comments_key, False)
                if st.session_state[comments_key]:
                    with user_action():
                        ctx.run(ctx.feed_state.load_comments(post.id))
                st.rerun()
        with cols[3]:
            label = "🔖 Saved" if post.saved else "📑 Save"
            if st.button(label, key=f"save_{post.id}"):
                with user_action("Failed to update saved posts"):
                    saved = ctx.run(ctx.feed_state.toggle_save(post.id, user_id))
                    notify_success("Post saved" if saved else "Post removed from saved")
                st.rerun()
        with cols[4]:
            with st.popover("🔗 Share"):
                st.caption("Link to this recording")
                st.code(ctx.feed.audio_url(post.audio_url), language=None)
        with cols[5]:
            if user_id == post.user_id:
                if st.button("🗑 Delete", key=f"delete_{post.id}"):
                    with user_action("Failed to delete post"):
                        ctx.run(ctx.feed_state.delete_post(post.id, user_id))
                        notify_success("Post deleted")
                    st.rerun()

        render_active_audio(ctx.player, post.id)

        if st.session_state.get(f"_show_comments_{post.id}"):
            render_comments(ctx, post)
