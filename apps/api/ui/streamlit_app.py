from __future__ import annotations

import os
from typing import Any, Callable, Mapping, Sequence

import streamlit as st

from apps.api.services.users import Role
from apps.api.tickets.state import TicketPriority, TicketStatus
from apps.api.ui.api import APIError, TicketsAPIClient
from apps.api.ui.utils import describe_event, format_relative_date, priority_label, status_label

DEFAULT_BASE_URL = os.getenv("TICKETS_API_BASE_URL", "http://localhost:8000")

_NO_CHOICE = ""


def _get_base_url() -> str:
    base_url = st.session_state.get("base_url")
    if not base_url:
        base_url = DEFAULT_BASE_URL
        st.session_state["base_url"] = base_url
    return str(base_url)


def _current_user() -> Mapping[str, Any] | None:
    user = st.session_state.get("user")
    return user if isinstance(user, Mapping) else None


def _set_session(user: Mapping[str, Any] | None, token: str | None) -> None:
    st.session_state["user"] = user
    st.session_state["token"] = token
    st.session_state.pop("selected_ticket_id", None)


def _build_client() -> TicketsAPIClient:
    return TicketsAPIClient(base_url=_get_base_url(), token=st.session_state.get("token"))


def _handle_api_call(
    callback: Callable[[], object], success_message: str | None = None
) -> tuple[bool, object | None]:
    try:
        result = callback()
    except APIError as exc:
        st.error(str(exc))
        return False, None
    else:
        if success_message:
            st.success(success_message)
        return True, result


def _render_sidebar(client: TicketsAPIClient) -> None:
    st.sidebar.header("Connection")
    base_url = st.sidebar.text_input("API Base URL", value=_get_base_url(), key="base_url")
    st.session_state["base_url"] = base_url

    user = _current_user()
    if user is not None:
        st.sidebar.markdown(f"**Signed in as:** {user.get('name')} ({user.get('email')})")
        st.sidebar.caption(f"Role: {user.get('role')}")
        if st.sidebar.button("Sign out"):
            _set_session(None, None)
            st.sidebar.info("Signed out")
        return

    st.sidebar.header("Sign in")
    with st.sidebar.form("login_form"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        login_submitted = st.form_submit_button("Sign in")
    if login_submitted:
        success, result = _handle_api_call(lambda: client.login(email=email, password=password))
        if success and isinstance(result, Mapping):
            _set_session(result.get("user"), result.get("token"))
            st.sidebar.success("Signed in")

    st.sidebar.header("Register")
    with st.sidebar.form("register_form"):
        reg_name = st.text_input("Name")
        reg_email = st.text_input("Email", key="register_email")
        reg_password = st.text_input("Password", type="password", key="register_password")
        register_submitted = st.form_submit_button("Create account")
    if register_submitted:
        success, result = _handle_api_call(
            lambda: client.register(email=reg_email, name=reg_name, password=reg_password)
        )
        if success and isinstance(result, Mapping):
            _set_session(result.get("user"), result.get("token"))
            st.sidebar.success("Account created")


def _category_options(client: TicketsAPIClient) -> dict[str, str]:
    success, categories = _handle_api_call(client.list_categories)
    if not success or not isinstance(categories, list):
        return {}
    return {category["name"]: category["id"] for category in categories}


def _render_tickets_tab(client: TicketsAPIClient) -> None:
    st.subheader("Tickets")

    success, tickets = _handle_api_call(client.list_tickets)
    if success and isinstance(tickets, list):
        if tickets:
            st.table(
                [
                    {
                        "ID": ticket["id"],
                        "Title": ticket["title"],
                        "Status": status_label(ticket.get("status")),
                        "Priority": priority_label(ticket.get("priority")),
                        "Category": ticket.get("categoryName") or "-",
                        "Reporter": ticket.get("reporterName") or "-",
                        "Created": format_relative_date(ticket["createdAt"]),
                    }
                    for ticket in tickets
                ]
            )
        else:
            st.caption("No tickets yet")

    st.markdown("### New ticket")
    categories = _category_options(client)
    with st.form("create_ticket_form"):
        title = st.text_input("Title")
        description = st.text_area("Description")
        priority = st.selectbox(
            "Priority",
            options=[item.value for item in TicketPriority],
            index=1,
            format_func=priority_label,
        )
        category_name = st.selectbox("Category", options=[_NO_CHOICE, *categories])
        submitted = st.form_submit_button("Create ticket")

    if submitted:
        if not title.strip() or not description.strip():
            st.error("Title and description are required")
        else:
            success, ticket = _handle_api_call(
                lambda: client.create_ticket(
                    title=title,
                    description=description,
                    priority=priority,
                    category_id=categories.get(category_name),
                ),
                "Ticket created",
            )
            if success and isinstance(ticket, Mapping):
                st.session_state["selected_ticket_id"] = ticket["id"]


def _render_timeline(events: Sequence[Mapping[str, Any]]) -> None:
    if not events:
        st.caption("No activity yet")
        return
    for event in events:
        st.markdown(
            f"**{event.get('userName') or 'Unknown user'}** {describe_event(event)}"
            f" · {format_relative_date(event['createdAt'])}"
        )


def _render_edit_form(client: TicketsAPIClient, ticket: Mapping[str, Any], *, is_admin: bool) -> None:
    with st.form("edit_ticket_form"):
        title = st.text_input("Title", value=ticket.get("title", ""))
        description = st.text_area("Description", value=ticket.get("description", ""))
        changes: dict[str, Any] = {}
        if is_admin:
            statuses = [item.value for item in TicketStatus]
            priorities = [item.value for item in TicketPriority]
            status = st.selectbox(
                "Status",
                options=statuses,
                index=statuses.index(ticket.get("status", statuses[0])),
                format_func=status_label,
            )
            priority = st.selectbox(
                "Priority",
                options=priorities,
                index=priorities.index(ticket.get("priority", priorities[1])),
                format_func=priority_label,
            )
            categories = _category_options(client)
            category_names = [_NO_CHOICE, *categories]
            current_category = ticket.get("categoryName") or _NO_CHOICE
            category_name = st.selectbox(
                "Category",
                options=category_names,
                index=category_names.index(current_category) if current_category in category_names else 0,
            )
            assignee_id = st.text_input("Assignee ID", value=ticket.get("assigneeId") or "")
        submitted = st.form_submit_button("Save changes")

    if not submitted:
        return
    if title != ticket.get("title"):
        changes["title"] = title
    if description != ticket.get("description"):
        changes["description"] = description
    if is_admin:
        changes["status"] = status
        changes["priority"] = priority
        changes["categoryId"] = categories.get(category_name)
        changes["assigneeId"] = assignee_id.strip() or None
    _handle_api_call(lambda: client.update_ticket(ticket["id"], changes), "Ticket updated")


def _render_detail_tab(client: TicketsAPIClient, *, is_admin: bool) -> None:
    st.subheader("Ticket details")
    ticket_id = st.text_input("Ticket ID", value=st.session_state.get("selected_ticket_id", ""))
    if not ticket_id:
        st.caption("Enter a ticket ID to see its details")
        return
    st.session_state["selected_ticket_id"] = ticket_id

    success, ticket = _handle_api_call(lambda: client.get_ticket(ticket_id))
    if not success or not isinstance(ticket, Mapping):
        return

    st.markdown(f"#### {ticket.get('title', 'Ticket')}")
    meta_cols = st.columns(4)
    meta_cols[0].metric("Status", status_label(ticket.get("status")))
    meta_cols[1].metric("Priority", priority_label(ticket.get("priority")))
    meta_cols[2].metric("Category", ticket.get("categoryName") or "-")
    assignee = ticket.get("assignee") or {}
    meta_cols[3].metric("Assignee", assignee.get("name") or "Unassigned")
    reporter = ticket.get("reporter") or {}
    st.caption(f"Reported by {reporter.get('name', '-')} · {format_relative_date(ticket['createdAt'])}")
    st.write(ticket.get("description", ""))

    st.markdown("#### Edit")
    _render_edit_form(client, ticket, is_admin=is_admin)

    st.markdown("#### Timeline")
    success, events = _handle_api_call(lambda: client.get_timeline(ticket_id))
    if success and isinstance(events, list):
        _render_timeline(events)

    if is_admin and st.button("Delete ticket"):
        success, _ = _handle_api_call(lambda: client.delete_ticket(ticket_id), "Ticket deleted")
        if success:
            st.session_state.pop("selected_ticket_id", None)


def _render_admin_tab(client: TicketsAPIClient) -> None:
    st.subheader("Categories")
    success, categories = _handle_api_call(client.list_categories)
    if success and isinstance(categories, list):
        for category in categories:
            name_col, delete_col = st.columns([4, 1])
            name_col.markdown(f"**{category['name']}** `{category['color']}` {category.get('description') or ''}")
            if delete_col.button("Delete", key=f"delete_category_{category['id']}"):
                _handle_api_call(lambda: client.delete_category(category["id"]), "Category deleted")

    with st.form("create_category_form"):
        name = st.text_input("Name")
        description = st.text_input("Description")
        color = st.color_picker("Color", value="#6366f1")
        submitted = st.form_submit_button("Add category")
    if submitted:
        if not name.strip():
            st.error("Category name is required")
        else:
            _handle_api_call(
                lambda: client.create_category(name=name, description=description or None, color=color),
                "Category created",
            )

    st.subheader("Users")
    success, users = _handle_api_call(client.list_users)
    if success and isinstance(users, list):
        st.table(
            [
                {"ID": user["id"], "Name": user["name"], "Email": user["email"], "Role": user["role"]}
                for user in users
            ]
        )


def main() -> None:
    st.set_page_config(page_title="Ticket Report System", layout="wide")
    client = _build_client()
    _render_sidebar(client)

    user = _current_user()
    if user is None:
        st.info("Sign in or register to manage tickets")
        return

    client = _build_client()
    is_admin = user.get("role") == Role.ADMIN.value
    labels = ["Tickets", "Ticket details"]
    if is_admin:
        labels.append("Administration")
    tabs = st.tabs(labels)

    with tabs[0]:
        _render_tickets_tab(client)
    with tabs[1]:
        _render_detail_tab(client, is_admin=is_admin)
    if is_admin:
        with tabs[2]:
            _render_admin_tab(client)


if __name__ == "__main__":
    main()
