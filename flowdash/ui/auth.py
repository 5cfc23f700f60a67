"""
Login and registration screens for the flow metrics dashboard.
"""

import logging
from typing import Dict, Optional

import streamlit as st

from ..data.dynamodb import StorageError
from ..services.auth import AuthError, AuthService

logger = logging.getLogger(__name__)


def check_password(auth: AuthService) -> bool:
    """
    Returns True if a user is logged in.

    Otherwise renders the login/register tabs and returns False. The logged in
    user (without password hash) is kept in st.session_state["user"].
    """

    def login_submitted():
        user = auth.authenticate(
            st.session_state.get("login_email"),
            st.session_state.get("login_password"),
        )
        if user:
            st.session_state["user"] = user
            st.session_state["password_correct"] = True
            st.session_state.pop("login_password", None)
        else:
            st.session_state["password_correct"] = False

    if st.session_state.get("user"):
        return True

    st.markdown("## Flow Metrics Dashboard")
    login_tab, register_tab = st.tabs(["Log in", "Create account"])

    with login_tab:
        st.text_input("Email", key="login_email")
        st.text_input("Password", type="password", key="login_password")
        st.button("Log in", on_click=login_submitted)

        if "password_correct" in st.session_state and not st.session_state["password_correct"]:
            st.error("Incorrect email or password")

    with register_tab:
        render_register_form(auth)

    return False


def render_register_form(auth: AuthService) -> None:
    with st.form("register_form"):
        name = st.text_input("Name")
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Create account")

    if not submitted:
        return

    try:
        user = auth.register(email, password, name)
    except AuthError as e:
        st.error(str(e))
        return
    except StorageError as e:
        logger.error(f"Registration failed: {e}")
        st.error("Could not create the account right now. Please try again.")
        return

    st.session_state["user"] = user
    st.success("Account created")
    st.rerun()


def logout():
    """Clear session state and logout user."""
    st.session_state.clear()
    st.rerun()


def get_current_user() -> Optional[Dict]:
    return st.session_state.get("user")


def get_current_user_id() -> Optional[str]:
    user = get_current_user()
    return user.get('id') if user else None
