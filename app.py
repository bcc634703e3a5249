"""
app.py
Streamlit gym membership register (staff-only).
Run: streamlit run app.py
"""

from __future__ import annotations

import logging
from datetime import date

import pandas as pd
import streamlit as st

import auth
import csv_transfer
import db
import membership
from config import settings
from errors import GymError
from models import PLAN_LABELS, STATUS_LABELS, membership_label
from renewal import RenewalForm, RenewalStep
from utils import derive_status, format_dmy, format_price
from views import MemberListState, reminder_rows

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

st.set_page_config(page_title=settings.APP_NAME, layout="wide")


def init_once():
    # Initialize DB + default staff account if needed
    if "db_ready" not in st.session_state:
        db.init_db(auth.hash_password(settings.DEFAULT_ADMIN_PASSWORD))
        st.session_state.db_ready = True


def init_session():
    if "identity" not in st.session_state:
        st.session_state.identity = auth.IdentityProvider()
    if "renewals" not in st.session_state:
        st.session_state.renewals = {}


def end_session():
    # Stop this session receiving store snapshots; member_list() subscribes again after sign-in
    unsubscribe = st.session_state.pop("unsubscribe", None)
    if unsubscribe:
        unsubscribe()
    st.session_state.pop("member_list", None)
    st.session_state.renewals = {}


def identity() -> auth.IdentityProvider:
    return st.session_state.identity


def member_list() -> MemberListState:
    if "member_list" not in st.session_state:
        state = MemberListState()
        st.session_state.member_list = state
        st.session_state.unsubscribe = db.subscribe(state.receive)
    return st.session_state.member_list


def login_screen():
    st.title("🔐 Staff Login")

    col1, col2 = st.columns([1, 1])
    with col1:
        username = st.text_input("Username", value="admin")
        password = st.text_input("Password", type="password")
        if st.button("Login", type="primary"):
            try:
                identity().sign_in(username, password)
                st.rerun()
            except GymError as e:
                st.error(str(e))

    with col2:
        st.info(
            "First run creates a default staff account:\n\n"
            "- username: **admin**\n"
            "- password: set by `GYM_DEFAULT_ADMIN_PASSWORD` (default **admin123**)\n\n"
            "You will be forced to change it on first login."
        )


def password_form(key: str):
    new1 = st.text_input("New password", type="password", key=f"{key}_1")
    new2 = st.text_input("Confirm new password", type="password", key=f"{key}_2")
    if st.button("Update password", type="primary", key=f"{key}_btn"):
        try:
            auth.change_password(identity().current_user().username, new1, new2)
            st.success("Password updated.")
            return True
        except GymError as e:
            st.error(str(e))
    return False


def force_change_password_screen():
    st.title("⚠️ Change Password (Required)")
    st.warning("You must change the default password before using the app.")
    if password_form("force_pw"):
        st.rerun()


def members_frame(members) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "ID": m.id,
                "Name": m.name,
                "Mobile": m.mobile,
                "Join Date": format_dmy(m.join_date),
                "Plan": membership_label(m.membership_type),
                "Price": format_price(m.price, settings.CURRENCY),
                "Expiry Date": format_dmy(m.expiry_date),
                "Status": STATUS_LABELS[derive_status(m.expiry_date)],
            }
            for m in members
        ],
        columns=["ID", "Name", "Mobile", "Join Date", "Plan", "Price", "Expiry Date", "Status"],
    )


# ---------- Tabs ----------

def add_member_tab():
    st.subheader("➕ Add New Member")

    col1, col2 = st.columns(2)
    with col1:
        name = st.text_input("Full Name *", key="new_name")
        mobile = st.text_input("Mobile Number *", key="new_mobile")
    with col2:
        plan = st.selectbox(
            "Membership Duration",
            options=list(PLAN_LABELS.keys()),
            format_func=membership_label,
            key="new_plan",
        )
        join_date = st.date_input("Join Date", value=date.today(), format="DD/MM/YYYY", key="new_join")
        price = st.number_input(f"Price ({settings.CURRENCY}) *", min_value=0.0, step=100.0, key="new_price")

    if st.button("Add Member", type="primary"):
        try:
            membership.add_member(name, mobile, join_date, plan, price)
            st.success(f"{name.strip()} has been added successfully!")
        except GymError as e:
            st.error(str(e))


def renew_panel(member, prefix="members"):
    forms = st.session_state.renewals
    form = forms.get(member.id)
    if form is None:
        if st.button("Renew", key=f"{prefix}_renew_{member.id}"):
            forms[member.id] = RenewalForm(member)
            st.rerun()
        return

    key = f"{prefix}_renewal_{member.id}"
    try:
        if form.step is RenewalStep.COLLECTING_START_DATE:
            text = st.text_input("Start date (DD/MM/YYYY), blank for default", key=f"{key}_start")
            if st.button("Next", key=f"{key}_start_next"):
                form.enter_start_date(text)
                st.rerun()
        elif form.step is RenewalStep.COLLECTING_PLAN:
            plan = st.selectbox("Duration", list(PLAN_LABELS.keys()), format_func=membership_label, key=f"{key}_plan")
            if st.button("Next", key=f"{key}_plan_next"):
                form.choose_plan(plan)
                st.rerun()
        elif form.step is RenewalStep.COLLECTING_PRICE:
            text = st.text_input(f"Price for {membership_label(form.plan_months)}", key=f"{key}_price")
            if st.button("Next", key=f"{key}_price_next"):
                form.enter_price(text)
                st.rerun()
        elif form.step is RenewalStep.CONFIRMING:
            st.info(form.summary())
            if st.button("Proceed with renewal", type="primary", key=f"{key}_confirm"):
                renewed = form.confirm()
                forms.pop(member.id, None)
                st.success(
                    f"{renewed.name}'s membership has been renewed for {membership_label(renewed.membership_type)} "
                    f"at {format_price(renewed.price, settings.CURRENCY)} starting from {format_dmy(renewed.join_date)}."
                )
    except GymError as e:
        st.error(str(e))

    if not form.finished and st.button("Cancel", key=f"{key}_cancel"):
        form.cancel()
        forms.pop(member.id, None)
        st.rerun()


def delete_panel(member, prefix="members"):
    confirm = st.checkbox(
        f"Delete {member.name}? This cannot be undone.",
        value=False,
        key=f"{prefix}_del_confirm_{member.id}",
    )
    if st.button("Delete", disabled=not confirm, key=f"{prefix}_del_{member.id}"):
        try:
            membership.delete_member(member.id)
            st.session_state.renewals.pop(member.id, None)
            st.success(f"{member.name} has been removed from the system.")
            st.rerun()
        except GymError as e:
            st.error(str(e))


def members_tab():
    state = member_list()
    state.set_query(st.text_input("🔍 Search by name or mobile", key="search"))

    page_items = state.page_items
    if not page_items:
        st.caption("No members found." if state.query else "No members yet.")
        return

    st.dataframe(members_frame(page_items), use_container_width=True, hide_index=True)

    c1, c2, c3 = st.columns([1, 2, 1])
    with c1:
        if st.button("◀ Previous", disabled=state.page <= 1):
            state.prev_page()
            st.rerun()
    with c2:
        st.caption(f"Page {state.page} of {state.total_pages} ({len(state.filtered)} members)")
    with c3:
        if st.button("Next ▶", disabled=state.page >= state.total_pages):
            state.next_page()
            st.rerun()

    st.divider()

    options = {f"{m.name} ({m.mobile}) - ID {m.id}": m for m in page_items}
    chosen = st.selectbox("Member", ["(none)"] + list(options.keys()))
    if chosen != "(none)":
        member = options[chosen]
        col1, col2 = st.columns(2)
        with col1:
            renew_panel(member)
        with col2:
            delete_panel(member)


def reminders_tab():
    st.subheader("⏰ Expired or expiring within 7 days")
    rows = reminder_rows(member_list().members)
    if not rows:
        st.caption("No membership reminders at this time. All memberships are active!")
        return

    for member, status, note in rows:
        with st.container(border=True):
            c1, c2, c3 = st.columns([2, 1, 1])
            with c1:
                st.markdown(f"**{member.name}** · {STATUS_LABELS[status]}")
                st.caption(f"{member.mobile} · {note}")
            with c2:
                renew_panel(member, prefix="reminders")
            with c3:
                delete_panel(member, prefix="reminders")


def transfer_tab():
    state = member_list()

    st.subheader("Export members to CSV")
    if state.members:
        st.download_button(
            f"Download {csv_transfer.export_filename()}",
            data=csv_transfer.export_members_csv(state.members),
            file_name=csv_transfer.export_filename(),
            mime="text/csv",
        )
    else:
        st.caption("No members to export.")

    st.divider()

    st.subheader("Import members from CSV")
    upload = st.file_uploader("CSV file", type=["csv"])
    if upload is not None and st.button("Import", type="primary"):
        try:
            count = csv_transfer.import_members_csv(upload.getvalue())
            st.success(f"{count} members imported successfully.")
        except GymError as e:
            st.error(str(e))


def settings_tab():
    st.subheader("Change password")
    password_form("settings_pw")


def main_app():
    user = identity().current_user()
    st.sidebar.title(f"🏋️ {settings.APP_NAME}")
    st.sidebar.caption(f"Signed in as: {user.display_name}")
    if st.sidebar.button("Sign Out"):
        identity().sign_out()
        end_session()
        st.rerun()

    state = member_list()
    state.sync()
    reminders = state.reminders()
    counts = state.counts()

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total members", counts["total"])
    c2.metric("Active", counts["active"])
    c3.metric("Expiring soon", counts["expiring"])
    c4.metric("Expired", counts["expired"])

    if reminders:
        st.warning(f"**{len(reminders)} member(s)** have expired or expiring memberships that need attention.")

    tabs = st.tabs(
        [
            "Add Member",
            f"All Members ({counts['total']})",
            f"Reminders ({len(reminders)})",
            "Import / Export",
            "Settings",
        ]
    )
    with tabs[0]:
        add_member_tab()
    with tabs[1]:
        members_tab()
    with tabs[2]:
        reminders_tab()
    with tabs[3]:
        transfer_tab()
    with tabs[4]:
        settings_tab()


# --------- App entry ---------

def run():
    init_once()
    init_session()

    if identity().current_user() is None:
        login_screen()
        return

    # Force password change on first login after DB creation
    if db.is_force_password_change():
        force_change_password_screen()
        return

    main_app()


if __name__ == "__main__":
    run()
