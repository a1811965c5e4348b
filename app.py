import os
from contextlib import contextmanager
from typing import Any, Dict, Optional

import pandas as pd
import streamlit as st

from core.data import DATA_URL, clear_cache, load_dashboard_data, prepare_context
from core.filters import AGE_GROUPS, ALL, RISK_CATEGORIES
from core.metrics_admin import TABLE_COLUMNS, compute_admin_dashboard
from core.metrics_user import compute_user_profile
from core.session import ANONYMOUS, Session, StaticIdentityProvider, can_view_user, landing_page


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;margin-bottom: 8px;}
        .status {border-radius: 10px;padding: 2px 8px;font-size: 0.8rem;color: #ffffff;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def render_chart(charts: Dict[str, Any], key: str, empty_message: str = "No data for the current filters."):
    spec = charts.get(key)
    if spec:
        st.vega_lite_chart(spec=spec, use_container_width=True)
    else:
        st.info(empty_message)


def identity_provider() -> StaticIdentityProvider:
    try:
        config = st.secrets.get("credentials", {})
    except Exception:
        config = {}
    return StaticIdentityProvider.from_config(config or {})


def current_session() -> Session:
    return st.session_state.get("session", ANONYMOUS)


# ---------- UI setup ----------
st.set_page_config(page_title="Underwriting Risk Dashboard", layout="wide")
inject_base_styles()

data_url = os.environ.get("UNDERWRITING_DATA_URL") or DATA_URL
session = current_session()

with st.sidebar:
    st.markdown("### Session")
    if session.is_authenticated:
        st.caption(f"Signed in as **{session.role}**" + (f" (ID {session.user_id})" if session.user_id else ""))
        if st.button("Sign out"):
            st.session_state["session"] = ANONYMOUS
            st.rerun()
    if st.button("Refresh data"):
        clear_cache()
        st.rerun()


def render_login():
    st.title("Underwriting Risk Dashboard")
    st.caption("Sign in to view underwriting analytics.")
    with st.form("login"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Sign in")
    if submitted:
        new_session = identity_provider().authenticate(email, password)
        if new_session is None:
            st.error("Invalid email or password.")
            return
        st.session_state["session"] = new_session
        st.rerun()


def render_admin(data_ctx: Dict[str, object]):
    st.title("Insurance Risk & Approval Dashboard")
    st.caption("Admin underwriting control")

    with st.sidebar:
        st.markdown("---")
        st.markdown("### Filters")
        show_approved = st.checkbox("Approved", value=True)
        show_rejected = st.checkbox("Rejected", value=True)
        age_group = st.selectbox("Age group", [ALL] + AGE_GROUPS, format_func=lambda v: "All Age Groups" if v == ALL else v)
        risk_category = st.selectbox(
            "Risk category", [ALL] + RISK_CATEGORIES, format_func=lambda v: "All Risk Categories" if v == ALL else v
        )

    ids = list(data_ctx.get("ids", []) or [])
    selected_id = st.session_state.get("selected_id", ALL)
    filters = {
        "show_approved": show_approved,
        "show_rejected": show_rejected,
        "age_group": age_group,
        "risk_category": risk_category,
        "selected_id": selected_id,
    }
    ctx = prepare_context(filters, data_ctx)
    payload = compute_admin_dashboard(ctx["filters"], ctx)
    kpis = payload["kpis"]
    charts = payload["charts"]

    cols = st.columns(3)
    cols[0].metric("Total Applications", f"{kpis['total_applications']:,}")
    cols[1].metric("Approved", f"{kpis['approved']:,}")
    cols[2].metric("Rejected", f"{kpis['rejected']:,}")

    c1, c2, c3 = st.columns(3)
    with c1:
        with card("Approval Distribution"):
            render_chart(charts, "approval_distribution")
    with c2:
        with card("Status Share (%)"):
            render_chart(charts, "status_share")
    with c3:
        with card("Safe Driving"):
            render_chart(charts, "safe_driving")

    c1, c2 = st.columns(2)
    with c1:
        with card("Risk Category vs Approval"):
            render_chart(charts, "risk_approval")
    with c2:
        with card("Applications by Claim Status & Approval"):
            render_chart(charts, "claim_status_approval")

    with card("Average of past_accidents and Average of speeding_violations by driving_experience"):
        render_chart(charts, "driving_experience")

    c1, c2 = st.columns(2)
    with c1:
        with card("Count by Credit Score (Bins of 400)"):
            render_chart(charts, "credit_score_bins")
    with c2:
        with card("Average Annual Mileage by Vehicle Year (all applications)"):
            render_chart(charts, "avg_mileage_by_vehicle_year")

    with card("Application Overview"):
        st.selectbox(
            "Application ID",
            [ALL] + ids,
            key="selected_id",
            format_func=lambda v: "All IDs" if v == ALL else f"ID {v}",
        )
        table = pd.DataFrame(payload["table"], columns=TABLE_COLUMNS)
        st.dataframe(table, use_container_width=True, hide_index=True)


def render_user(data_ctx: Dict[str, object], user_id: Optional[str]):
    st.title("User Risk & Insurance Profile")
    st.markdown(f"User ID: **{user_id or '-'}**")

    if not can_view_user(session, user_id):
        st.error("You are not allowed to view this profile.")
        return

    profile = compute_user_profile(user_id, data_ctx)
    if not profile["found"]:
        st.info("Loading user data...")
        return

    risk = profile["risk_level"]
    cols = st.columns(4)
    cols[0].metric("Vehicle Type", str(profile["vehicle_type"]))
    cols[1].metric("Annual Mileage", profile["annual_mileage_label"])
    cols[2].metric("Credit Score", f"{profile['credit_score']}")
    cols[3].markdown(
        f"<div class='card' style='border-top: 4px solid {risk['color']}'>RISK LEVEL"
        f"<h3 style='color: {risk['color']}'>{risk['label']}</h3></div>",
        unsafe_allow_html=True,
    )

    c1, c2 = st.columns(2)
    with c1:
        with card("Credit Score Health"):
            gauge = profile["gauge"]
            st.progress(gauge["fraction"], text=f"{gauge['score']} (300-850)")
    with c2:
        with card("Driving Violations"):
            render_chart(profile["charts"], "violations", "No recorded violations.")
            st.caption(" · ".join(f"{v['name']}: {v['value']}" for v in profile["violations"]))

    with card("Annual Mileage Distribution"):
        render_chart(profile["charts"], "mileage_distribution")


page = landing_page(session)
if page == "login":
    render_login()
    st.stop()

data_ctx = load_dashboard_data(data_url)
if data_ctx.get("error"):
    st.warning("Could not load applications. Showing an empty dashboard.")

if page == "admin":
    render_admin(data_ctx)
else:
    render_user(data_ctx, session.user_id)
