"""
Profile page - the signed-in user's profile, posts and saved posts.

Also hosts the edit-profile form (username, bio, website, avatar) and the
password change form.
"""

import streamlit as st

from voicefeed.core.exceptions import VoiceFeedError
from voicefeed.ui.context import get_context
from voicefeed.ui.notify import notify_error, notify_success, user_action
from voicefeed.ui.utils import image_from_upload

ctx = get_context()
user_id = ctx.user_id

try:
    with st.spinner("Loading profile..."):
        profile = ctx.run(ctx.feed.fetch_profile(user_id))
except VoiceFeedError as exc:
    notify_error(f"Failed to load profile: {exc.detail}")
    st.stop()

# ---------------------------------------------------------------------------
# Header
# ---------------------------------------------------------------------------
col_avatar, col_info = st.columns([1, 4])
with col_avatar:
    if profile.avatar_url:
        st.image(ctx.feed.avatar_url(profile.avatar_url), width=96)
    else:
        st.markdown(f"# {profile.username[:1].upper()}")
with col_info:
    st.header(profile.username)
    if profile.bio:
        st.write(profile.bio)
    if profile.website:
        st.markdown(f"[{profile.website}]({profile.website})")

# ---------------------------------------------------------------------------
# Edit profile
# ---------------------------------------------------------------------------
with st.expander("Edit Profile"):
    with st.form("edit_profile_form"):
        e_username = st.text_input("Username", value=profile.username)
        e_bio = st.text_area("Bio", value=profile.bio or "", height=80)
        e_website = st.text_input("Website", value=profile.website or "")
        e_avatar = st.file_uploader("Avatar", type=["png", "jpg", "jpeg", "gif", "webp"])
        if st.form_submit_button("Save changes"):
            with st.spinner("Updating profile..."), user_action("Failed to update profile"):
                updated = ctx.run(
                    ctx.feed.update_profile(
                        user_id,
                        username=e_username,
                        bio=e_bio,
                        website=e_website,
                        avatar=image_from_upload(e_avatar),
                        current_avatar=profile.avatar_url,
                    )
                )
                st.session_state["_username"] = updated.username
                notify_success("Profile updated successfully")
                st.rerun()

with st.expander("Change Password"):
    with st.form("change_password_form", clear_on_submit=True):
        new_password = st.text_input("New password", type="password")
        confirm_password = st.text_input("Confirm new password", type="password")
        if st.form_submit_button("Update password"):
            with user_action("Failed to update password"):
                ctx.run(ctx.session.update_password(new_password, confirm_password))
                notify_success("Password updated successfully")

# ---------------------------------------------------------------------------
# Posts / saved tabs
# ---------------------------------------------------------------------------
tab_posts, tab_saved = st.tabs(["Posts", "Saved"])

with tab_posts:
    posts = []
    with user_action("Failed to load posts"):
        posts = ctx.run(ctx.feed.fetch_user_posts(user_id))
    if not posts:
        st.info("No posts yet")
    for post in posts:
        with st.container(border=True):
            st.markdown(f"**{post.title}**")
            st.caption(f"❤️ {post.like_count} · 💬 {post.comment_count}")
            if post.image_url:
                st.image(ctx.feed.image_url(post.image_url), width=160)

with tab_saved:
    saved = []
    with user_action("Failed to load saved posts"):
        saved = ctx.run(ctx.feed.fetch_saved_posts(user_id))
    if not saved:
        st.info("No saved posts yet")
    for post in saved:
        with st.container(border=True):
            st.markdown(f"**{post.title}**")
            st.caption(f"By {post.author.username}")
