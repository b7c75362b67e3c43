# src/ui/app.py
"""Main Streamlit application with authentication."""

import streamlit as st

from src.client.api import FetchError
from src.client.store import ResourceStore
from src.log import configure_logging
from src.ui.helpers.current_context import get_client, get_scheduler, get_settings, run_async
from src.ui.pages import (
    calendar_page,
    import_page,
    journal_page,
    journals_page,
    reports_page,
    trades_list_page,
)

# Configure page
st.set_page_config(
    page_title="Trading Journal",
    page_icon="📊",
    layout="wide",
    initial_sidebar_state="expanded",
)


def init_session_state():
    """Initialize Streamlit session state."""
    if "authenticated" not in st.session_state:
        st.session_state.authenticated = False
    if "user" not in st.session_state:
        st.session_state.user = None
    if "journal_id" not in st.session_state:
        st.session_state.journal_id = None


def login_page():
    """Render login/signup page."""
    st.title("Trading Journal")
    st.write("Log trades, track win rate and PnL per journal")

    col1, col2 = st.columns(2)
    client = get_client()

    with col1:
        st.subheader("Login")
        email = st.text_input("Email", key="login_email")
        password = st.text_input("Password", type="password", key="login_password")

        if st.button("Login", key="login_btn"):
            result = run_async(lambda: client.sign_in(email, password))
            if result.get("success"):
                st.session_state.authenticated = True
                st.session_state.user = result["data"]
                st.rerun()
            else:
                st.error(result.get("error") or "Invalid credentials.")

    with col2:
        st.subheader("Sign Up")
        new_email = st.text_input("Email", key="signup_email")
        new_password = st.text_input("Password", type="password", key="signup_password")
        new_password_confirm = st.text_input(
            "Confirm Password", type="password", key="signup_password_confirm"
        )

        if st.button("Sign Up", key="signup_btn"):
            result = run_async(
                lambda: client.sign_up(new_email, new_password, new_password_confirm)
            )
            if result.get("success"):
                st.session_state.authenticated = True
                st.session_state.user = result["data"]
                st.rerun()
            else:
                st.error(result.get("error") or "Sign up failed.")
                for issue in result.get("issues") or []:
                    st.caption(f"{'.'.join(issue['path'])}: {issue['message']}")


def logout():
    client = get_client()
    client.token = None
    st.session_state.authenticated = False
    st.session_state.user = None
    st.session_state.journal_id = None
    st.session_state.resource_store = ResourceStore()
    get_scheduler().clear()


def main_app():
    """Render main application."""
    client = get_client()

    with st.sidebar:
        st.title("📒 Journals")
        st.caption(st.session_state.user.get("email", ""))

        try:
            journals = run_async(client.list_journals)
        except FetchError as e:
            st.error(f"Could not load journals: {e}")
            journals = []

        if journals:
            ids = [j["id"] for j in journals]
            names = {j["id"]: j["name"] for j in journals}
            current = st.session_state.journal_id
            selected = st.selectbox(
                "Select Journal",
                ids,
                index=ids.index(current) if current in ids else 0,
                format_func=lambda i: names[i],
            )
            if selected != current:
                if current:
                    get_scheduler().clear(f"/api/journals/{current}")
                st.session_state.journal_id = selected
        else:
            st.info("No journals yet. Create one on the Journals page.")
            st.session_state.journal_id = None

        st.divider()
        if st.button("Logout"):
            logout()
            st.rerun()

    st.title("Trading Journal")

    page = st.selectbox(
        "Navigate",
        ["Journals", "Journal", "Trades List", "Reports", "Calendar", "Import / Export"],
    )

    if page == "Journals":
        journals_page.render(journals)
    elif page == "Journal":
        journal_page.render()
    elif page == "Trades List":
        trades_list_page.render()
    elif page == "Reports":
        reports_page.render()
    elif page == "Calendar":
        calendar_page.render()
    elif page == "Import / Export":
        import_page.render()


def main():
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)
    init_session_state()

    if st.session_state.authenticated:
        main_app()
    else:
        login_page()


if __name__ == "__main__":
    main()
