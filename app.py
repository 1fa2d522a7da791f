"""
app.py
Streamlit Gym Management System (owner-only).
Run: streamlit run app.py
"""

from __future__ import annotations

import random
from datetime import date, timedelta

import pandas as pd
import streamlit as st

import auth
import clients
import db
import listing
import membership
import photos
import utils
from config import settings
from errors import GymError
from logging_config import setup_logging
from models import FEE_PAID, FEE_STATUSES, FEE_UNPAID, PLAN_MONTHS, STATUS_TABS, PhotoUpload

st.set_page_config(page_title="Gym Management System", layout="wide")

PAGE_SIZE = 10
TABLE_COLUMNS = ["id", "name", "phone", "joinDate", "expiryDate", "lastVisit", "feeStatus", "status"]


@st.cache_resource
def init_once():
    # Logging + DB + owner account, once per server process
    setup_logging(settings.log_level, settings.log_file)
    auth.init_auth(settings.owner_credentials())
    return True


def require_login():
    if "logged_in" not in st.session_state:
        st.session_state.logged_in = False
    if "username" not in st.session_state:
        st.session_state.username = None


def is_owner() -> bool:
    return bool(st.session_state.logged_in) and auth.is_authorized(st.session_state.username)


def logout():
    st.session_state.logged_in = False
    st.session_state.username = None
    st.success("Logged out.")


def show_result(result, success: str) -> bool:
    """Render an OpResult; True when the operation succeeded."""
    if not result.ok:
        st.error(f"{result.message} ({result.kind})")
        return False
    for w in result.warnings:
        st.warning(w)
    st.success(success)
    return True


def login_screen():
    st.title("🔐 Gym Owner Login")

    col1, col2 = st.columns([1, 1])
    with col1:
        username = st.text_input("Username", value=settings.owner_username)
        password = st.text_input("Password", type="password")
        if st.button("Login", type="primary"):
            if auth.login(username.strip(), password):
                st.session_state.logged_in = True
                st.session_state.username = username.strip()
                st.rerun()
            else:
                st.error("Invalid username or password.")

    with col2:
        if settings.owner_credentials().is_default:
            st.info(
                "No owner password configured (GYM_OWNER_PASSWORD), so the default applies:\n\n"
                f"- username: **{settings.owner_username}**\n"
                "- password: **admin123**\n\n"
                "You will be forced to change it on first login."
            )


def force_change_password_screen():
    st.title("⚠️ Change Password (Required)")

    st.warning("You must change the default password before using the app.")
    new1 = st.text_input("New password", type="password")
    new2 = st.text_input("Confirm new password", type="password")

    if st.button("Update password", type="primary"):
        errors = auth.validate_new_password(new1, new2)
        if errors:
            for e in errors:
                st.error(e)
            return
        auth.set_password(st.session_state.username, new1)
        st.success("Password updated. You can continue.")
        st.rerun()


def records_frame(records, today: date) -> pd.DataFrame:
    rows = []
    for r in records:
        row = r.to_dict()
        row["status"] = membership.derive_status(r, today)
        rows.append(row)
    if not rows:
        return pd.DataFrame(columns=TABLE_COLUMNS)
    return pd.DataFrame(rows)[TABLE_COLUMNS]


def photo_upload(uploaded) -> PhotoUpload | None:
    if uploaded is None:
        return None
    return PhotoUpload(filename=uploaded.name, content_type=uploaded.type or "", data=uploaded.getvalue())


def dashboard_page():
    st.header("📊 Dashboard")

    today = date.today()
    result = listing.stats(authorized=is_owner(), today=today)
    if not result.ok:
        st.error(result.message)
        return
    s = result.value

    c1, c2, c3, c4, c5 = st.columns(5)
    c1.metric("Total clients", s.total)
    c2.metric("Paid", s.paid)
    c3.metric("Unpaid", s.unpaid)
    c4.metric("Expired", s.expired)
    c5.metric(f"Expiring in next {s.expiring_days} days", s.expiring_soon)

    st.divider()

    st.subheader(f"Expiring soon (next {s.expiring_days} days)")
    records = listing.fetch_clients(sort_by="expiryDate", order="asc", today=today)
    soon = [r for r in records if membership.expires_within(r, today, s.expiring_days)]
    if soon:
        st.dataframe(records_frame(soon, today), use_container_width=True, hide_index=True)
    else:
        st.caption(f"No clients expiring in the next {s.expiring_days} days.")


def client_form(existing=None):
    if existing:
        st.subheader(f"✏️ Edit Client (ID: {existing.id})")
    else:
        st.subheader("➕ Add Client")

    key = f"form_{existing.id if existing else 'new'}"
    col1, col2, col3 = st.columns(3)
    with col1:
        name = st.text_input("Name", value=(existing.name if existing else ""), key=f"{key}_name")
        phone = st.text_input("Phone (10 digits)", value=(existing.phone if existing else ""), key=f"{key}_phone")

    with col2:
        join_date = st.date_input("Join date", value=(existing.join_date if existing else date.today()), key=f"{key}_join")
        if existing:
            expiry_date = st.date_input("Expiry date", value=existing.expiry_date, key=f"{key}_expiry")
            plan_type = None
        else:
            plan_type = st.selectbox("Plan", options=list(PLAN_MONTHS.keys()), key=f"{key}_plan")
            expiry_date = None
            st.caption(f"Expires: {membership.expiry_from_duration(join_date, PLAN_MONTHS[plan_type]).isoformat()}")

    with col3:
        current_fee = existing.fee_status if existing else FEE_UNPAID
        fee_status = st.selectbox("Fee status", options=list(FEE_STATUSES), index=FEE_STATUSES.index(current_fee), key=f"{key}_fee")
        uploaded = st.file_uploader("Photo (optional, max 5 MB)", type=["jpg", "jpeg", "png", "webp"], key=f"{key}_photo")

    if st.button("Save", type="primary", key=f"{key}_save"):
        fields = {"name": name, "phone": phone, "joinDate": join_date, "feeStatus": fee_status}
        if existing:
            fields["expiryDate"] = expiry_date
            result = clients.update_client(existing.id, fields, photo_upload(uploaded), authorized=is_owner())
            if show_result(result, "Client updated."):
                st.session_state.edit_client_id = None
                st.rerun()
        else:
            fields["duration"] = PLAN_MONTHS[plan_type]
            result = clients.create_client(fields, photo_upload(uploaded), authorized=is_owner())
            if show_result(result, "Client added."):
                st.rerun()


def client_actions(client):
    st.subheader(f"{client.name} ({client.phone})")
    today = date.today()
    st.write(
        f"Joined **{client.join_date}** | Expires **{client.expiry_date}** | "
        f"Fee **{client.fee_status}** | Status **{membership.derive_status(client, today)}** | "
        f"Last visit **{client.last_visit or '-'}**"
    )
    if client.photo_ref:
        try:
            st.image(str(photos.photo_path(client.photo_ref)), width=160)
        except GymError:
            st.caption("Photo missing.")

    c1, c2, c3, c4, c5 = st.columns(5)
    with c1:
        label = "Mark unpaid" if client.fee_status == FEE_PAID else "Mark paid"
        if st.button(label):
            if show_result(clients.toggle_fee(client.id, authorized=is_owner()), "Fee status updated."):
                st.rerun()
    with c2:
        months = st.number_input("Months", min_value=1, max_value=24, value=1, step=1)
        if st.button("Renew"):
            result = clients.renew(client.id, int(months), authorized=is_owner())
            if show_result(result, "Membership renewed."):
                st.rerun()
    with c3:
        if st.button("Record visit"):
            if show_result(clients.record_visit(client.id, authorized=is_owner()), "Visit recorded."):
                st.rerun()
    with c4:
        if st.button("Edit"):
            st.session_state.edit_client_id = client.id
            st.rerun()
    with c5:
        delete_confirm = st.checkbox("Confirm delete", value=False, key="del_confirm")
        if st.button("Delete", type="secondary", disabled=not delete_confirm):
            if show_result(clients.delete_client(client.id, authorized=is_owner()), "Client deleted."):
                st.rerun()


def clients_page():
    st.header("👥 Clients")

    with st.sidebar:
        st.subheader("Search & Filters")
        search = st.text_input("Search (name/phone)")
        status_tab = st.selectbox("Status", list(STATUS_TABS.keys()))
        sort_by = st.selectbox("Sort by", list(listing.SORT_COLUMNS.keys()))
        order = st.radio("Order", ["desc", "asc"], horizontal=True)
        page = st.number_input("Page", min_value=1, value=1, step=1)

    today = date.today()
    result = listing.list_clients(
        authorized=is_owner(),
        search=search,
        status=status_tab,
        page=int(page),
        page_size=PAGE_SIZE,
        sort_by=sort_by,
        order=order,
        today=today,
    )
    if not result.ok:
        st.error(result.message)
        return
    client_page = result.value

    st.caption(f"{client_page.total} client(s), page {client_page.current_page} of {max(client_page.total_pages, 1)}")
    st.dataframe(records_frame(client_page.clients, today), use_container_width=True, hide_index=True)

    st.divider()

    ids = [c.id for c in client_page.clients]
    selected_id = st.selectbox("Client ID", options=["(none)"] + [str(i) for i in ids])
    if selected_id != "(none)":
        found = clients.get_client(int(selected_id), authorized=is_owner())
        if found.ok:
            client_actions(found.value)
        else:
            st.error(found.message)

    st.divider()

    if st.session_state.get("edit_client_id"):
        found = clients.get_client(st.session_state.edit_client_id, authorized=is_owner())
        if found.ok:
            client_form(existing=found.value)
        if st.button("Cancel edit"):
            st.session_state.edit_client_id = None
            st.rerun()
    else:
        client_form(existing=None)


def reports_page():
    st.header("🧾 Reports")

    st.subheader("Export clients to CSV")
    if not is_owner():
        st.error("Login required.")
        return
    today = date.today()
    records = listing.fetch_clients(sort_by="createdAt", order="desc", today=today)
    if records:
        st.download_button(
            "Download clients.csv",
            data=utils.clients_to_csv_bytes(records, today),
            file_name="clients.csv",
            mime="text/csv",
        )
    else:
        st.caption("No clients to export.")


def insert_sample_data() -> int:
    """
    Insert 3 clients: one expiring in ~5 days, one paid on a longer plan, one expired.
    Phones are random so the button can be pressed more than once.
    """
    today = date.today()
    samples = [
        {"name": "Ahmed Hassan", "joinDate": today - timedelta(days=25), "expiryDate": today + timedelta(days=5), "feeStatus": FEE_PAID},
        {"name": "Mona Ali", "joinDate": today - timedelta(days=10), "duration": 3, "feeStatus": FEE_PAID},
        {"name": "Omar Samy", "joinDate": today - timedelta(days=60), "expiryDate": today - timedelta(days=2)},
    ]
    created = 0
    for sample in samples:
        sample["phone"] = "9" + "".join(random.choices("0123456789", k=9))
        if clients.create_client(sample, authorized=is_owner()).ok:
            created += 1
    return created


def settings_page():
    st.header("⚙️ Settings")

    st.subheader("Change password")
    old = st.text_input("Current password", type="password")
    p1 = st.text_input("New password", type="password")
    p2 = st.text_input("Confirm new password", type="password")
    if st.button("Update password", type="primary"):
        if p1 != p2:
            st.error("Passwords do not match.")
        else:
            result = auth.change_password(st.session_state.username, old, p1, authorized=is_owner())
            show_result(result, "Password updated.")

    st.divider()

    st.subheader("Sample data")
    st.caption("Insert 3 sample clients for testing (adds new rows each run).")
    if st.button("Insert sample data"):
        st.success(f"{insert_sample_data()} sample client(s) inserted.")
        st.rerun()


def main_app():
    st.sidebar.title("🏋️ Gym System")
    st.sidebar.caption(f"Logged in as: {st.session_state.username}")

    pages = ["Dashboard", "Clients", "Reports", "Settings"]
    if "page" not in st.session_state:
        st.session_state.page = "Dashboard"
    st.session_state.page = st.sidebar.radio("Navigate", pages, index=pages.index(st.session_state.page))

    if st.sidebar.button("Logout"):
        logout()
        st.rerun()

    if st.session_state.page == "Dashboard":
        dashboard_page()
    elif st.session_state.page == "Clients":
        clients_page()
    elif st.session_state.page == "Reports":
        reports_page()
    elif st.session_state.page == "Settings":
        settings_page()


# --------- App entry ---------

def run():
    init_once()
    require_login()

    if not st.session_state.logged_in:
        login_screen()
        return

    # Force password change on first login with the default password
    if db.is_force_password_change():
        force_change_password_screen()
        return

    main_app()


if __name__ == "__main__":
    run()
