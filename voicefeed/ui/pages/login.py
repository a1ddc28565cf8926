"""
Login page - email and password sign-in.
"""

import streamlit as st

from voicefeed.ui.context import get_context
from voicefeed.ui.notify import user_action

ctx = get_context()

st.header("Sign in")

with st.form("login_form"):
    email = st.text_input("Email")
    password = st.text_input("Password", type="password")
    submitted = st.form_submit_button("Sign in", type="primary")

if submitted:
    if not email.strip() or not password:
        st.error("Email and password are required.")
    else:
        with st.spinner("Signing in..."), user_action("Sign in failed"):
            ctx.run(ctx.session.sign_in(email.strip(), password))
            st.rerun()

st.caption("No account yet? Use **Register** in the sidebar.")
