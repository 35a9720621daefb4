from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PortalAnchors:
    """
    The portal only serves server-rendered HTML; paths, ids and labels may change over time.
    Keep every path, anchor and form field name here for easy maintenance.
    """

    # Paths (relative to the configured base URL)
    overview_path: str = "/registered/index"
    activity_path: str = "/registered/opal-card-transactions/"
    login_page_path: str = "/login/index"
    login_submit_path: str = "/login/registeredUserUsernameAndPasswordLogin"

    # Any navigation under this prefix means the session is no longer authenticated.
    login_path_prefix: str = "/login/"

    # Activity query parameters
    activity_card_param: str = "cardIndex"
    activity_page_param: str = "pageIndex"

    # Login form
    csrf_input_name: str = "CSRFToken"
    username_field: str = "h_username"
    password_field: str = "h_password"

    # Overview page: <table id="dashboard-active-cards"> with header labels for the columns we read
    overview_table_id: str = "dashboard-active-cards"
    overview_name_header: str = "Opal Card"
    overview_balance_header: str = "Balance"

    # Activity page: <table id="transaction-data"><caption>My Opal activity: <card></caption>
    activity_table_id: str = "transaction-data"
    activity_row_cells: int = 9


DEFAULT_ANCHORS = PortalAnchors()
