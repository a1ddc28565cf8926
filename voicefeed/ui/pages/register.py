"""
Register page - create an identity and its profile.
"""

import streamlit as st

from voicefeed.ui.context import get_context
from voicefeed.ui.notify import notify_success, user_action

ctx = get_context()

st.header("Create account")

with st.form("register_form"):
    username = st.text_input("Username")
    email = st.text_input("Email")
    password = st.text_input("Password", type="password")
    submitted = st.form_submit_button("Sign up", type="primary")

if submitted:
    if not all(v.strip() for v in (username, email, password)):
        st.error("All fields are required.")
    else:
        with st.spinner("Creating account..."), user_action("Sign up failed"):
            ctx.run(ctx.session.sign_up(email.strip(), password, username))
            notify_success("Account created")
            st.rerun()
