from __future__ import annotations

from datetime import datetime

import pytest

from opal_portal.errors import FieldParseError, PageStructureError
from opal_portal.models import Activity, Card, Overview, Transaction
from opal_portal.portal.parsers import parse_activity, parse_login, parse_overview
from opal_portal.util.dates import load_zone

from portal_pages import ACTIVITY_PAGE, LOGIN_PAGE, OVERVIEW_PAGE, activity_page_with_rows


SYDNEY = load_zone("Australia/Sydney")

TRAIN_ROW = (
    '<tr><td>3</td><td>Wed<br/>09/07/2014<br/>07:49</td><td><img alt="train" src="/t.png"/></td>'
    "<td>Chatswood to Town Hall</td><td>1</td><td></td><td>$4.10</td><td>$0.00</td><td>-$4.10</td></tr>"
)


def test_parse_login() -> None:
    assert parse_login(LOGIN_PAGE.encode("utf-8")) == "xxx-yyy-zzz"


def test_parse_login_missing_input() -> None:
    with pytest.raises(PageStructureError, match="did not find CSRFToken"):
        parse_login(b"<form><input name='username'></form>")


def test_parse_login_input_without_value_reports_node() -> None:
    with pytest.raises(PageStructureError) as exc:
        parse_login(b'<input type="hidden" name="CSRFToken">')
    assert 'name="CSRFToken"' in str(exc.value)


def test_parse_overview() -> None:
    overview = parse_overview(OVERVIEW_PAGE.encode("utf-8"))
    assert overview == Overview(cards=[Card(name="My 31415926535 card", balance_cents=7743)])


def test_parse_overview_skips_rows_without_both_cells() -> None:
    page = OVERVIEW_PAGE.replace(
        "</tbody>",
        '<tr><td colspan="5">You have no other cards</td></tr></tbody>',
    )
    overview = parse_overview(page)
    assert [c.name for c in overview.cards] == ["My 31415926535 card"]


def test_parse_overview_bad_balance_fails_whole_page() -> None:
    page = OVERVIEW_PAGE.replace("$77.43", "77.43")
    with pytest.raises(FieldParseError) as exc:
        parse_overview(page)
    msg = str(exc.value)
    assert "card row 0" in msg
    assert "'77.43'" in msg


def test_parse_overview_missing_table() -> None:
    page = OVERVIEW_PAGE.replace("dashboard-active-cards", "dashboard-cards-v2")
    with pytest.raises(PageStructureError, match="dashboard-active-cards"):
        parse_overview(page)


def test_parse_overview_missing_balance_column() -> None:
    page = OVERVIEW_PAGE.replace("<th>Balance</th>", "<th>Amount</th>")
    with pytest.raises(PageStructureError, match="Balance"):
        parse_overview(page)


def test_parse_overview_missing_tbody() -> None:
    page = (
        '<table id="dashboard-active-cards"><thead><tr><th>View</th><th>Opal Card</th><th>Type</th>'
        "<th>Balance</th></tr></thead></table>"
    )
    with pytest.raises(PageStructureError, match="tbody"):
        parse_overview(page)


def test_parse_activity() -> None:
    activity = parse_activity(ACTIVITY_PAGE.encode("utf-8"), zone=SYDNEY)
    want = Activity(
        card_name="31415926535 is pi",
        transactions=[
            Transaction(
                number=6,
                when=datetime(2015, 9, 29, 7, 47, tzinfo=SYDNEY),
                mode="bus",
                details="Willoughby Rd nr Garland to York St nr Margaret St",
                journey_number=6,
                fare_cents=350,
                amount_cents=-350,
            ),
            Transaction(
                number=5,
                when=datetime(2014, 7, 9, 17, 1, tzinfo=SYDNEY),
                mode="train",
                details="Town Hall to No tap off",
                fare_applied="Default fare",
                fare_cents=810,
                amount_cents=-810,
            ),
            Transaction(
                number=3,
                when=datetime(2014, 7, 9, 7, 49, tzinfo=SYDNEY),
                mode="train",
                details="Chatswood to Town Hall",
                journey_number=1,
                fare_cents=410,
                amount_cents=-410,
            ),
            Transaction(
                number=2,
                when=datetime(2014, 7, 9, 7, 49, tzinfo=SYDNEY),
                mode="",
                details="Top up - opal.com.au",
                amount_cents=10000,
            ),
        ],
    )
    assert activity == want


def test_parse_activity_is_repeatable() -> None:
    raw = ACTIVITY_PAGE.encode("utf-8")
    assert parse_activity(raw, zone=SYDNEY) == parse_activity(raw, zone=SYDNEY)
    assert parse_overview(OVERVIEW_PAGE) == parse_overview(OVERVIEW_PAGE)


def test_parse_activity_keeps_page_order() -> None:
    older = TRAIN_ROW.replace("<td>3</td>", "<td>1</td>")
    newer = TRAIN_ROW.replace("<td>3</td>", "<td>9</td>")
    activity = parse_activity(activity_page_with_rows(older + newer), zone=SYDNEY)
    assert [t.number for t in activity.transactions] == [1, 9]


def test_parse_activity_caption_without_colon() -> None:
    activity = parse_activity(activity_page_with_rows(TRAIN_ROW, caption="  Card 42  "), zone=SYDNEY)
    assert activity.card_name == "Card 42"


def test_parse_activity_missing_caption() -> None:
    page = '<table id="transaction-data"><tbody></tbody></table>'
    with pytest.raises(PageStructureError, match="caption"):
        parse_activity(page, zone=SYDNEY)


def test_parse_activity_missing_table() -> None:
    with pytest.raises(PageStructureError, match="transaction-data"):
        parse_activity("<html><body><p>Maintenance</p></body></html>", zone=SYDNEY)


def test_parse_activity_id_on_non_table_element() -> None:
    with pytest.raises(PageStructureError, match="transaction-data"):
        parse_activity('<div id="transaction-data"></div>', zone=SYDNEY)


@pytest.mark.parametrize("cells", [8, 10])
def test_parse_activity_rejects_wrong_cell_count(cells: int) -> None:
    tds = "".join(f"<td>{i}</td>" for i in range(cells))
    with pytest.raises(PageStructureError) as exc:
        parse_activity(activity_page_with_rows(f"<tr>{tds}</tr>"), zone=SYDNEY)
    assert f"with {cells} TDs, want 9" in str(exc.value)
    assert "row 0" in str(exc.value)


def test_parse_activity_malformed_optional_field_is_fatal() -> None:
    row = TRAIN_ROW.replace("<td>$0.00</td>", "<td>free</td>")
    with pytest.raises(FieldParseError) as exc:
        parse_activity(activity_page_with_rows(row), zone=SYDNEY)
    assert "bad discount 'free'" in str(exc.value)


def test_parse_activity_bad_time_is_fatal() -> None:
    row = TRAIN_ROW.replace("Wed<br/>09/07/2014<br/>07:49", "yesterday")
    with pytest.raises(FieldParseError, match="bad time 'yesterday'"):
        parse_activity(activity_page_with_rows(row), zone=SYDNEY)


def test_parse_activity_bad_transaction_number_is_fatal() -> None:
    row = TRAIN_ROW.replace("<td>3</td>", "<td>#3</td>")
    with pytest.raises(FieldParseError, match="bad transaction number"):
        parse_activity(activity_page_with_rows(row), zone=SYDNEY)


def test_parse_activity_one_bad_row_discards_everything() -> None:
    bad = TRAIN_ROW.replace("-$4.10", "-4.10")
    with pytest.raises(FieldParseError, match="row 1"):
        parse_activity(activity_page_with_rows(TRAIN_ROW + bad), zone=SYDNEY)
