from __future__ import annotations

import logging
from datetime import tzinfo
from typing import Callable, Optional, Union

from bs4.element import Tag

from ..errors import FieldParseError, PageStructureError
from ..models import Activity, Card, Overview, Transaction
from ..util.dates import parse_decimal, parse_portal_timestamp
from ..util.money import parse_amount
from .anchors import DEFAULT_ANCHORS, PortalAnchors
from .navigator import (
    attr_val,
    child_elements,
    each_by_tag,
    find_by_attr,
    find_by_tag,
    parse_document,
    render,
    text,
)


logger = logging.getLogger(__name__)

RawPage = Union[bytes, str]


def parse_login(raw: RawPage, *, anchors: PortalAnchors = DEFAULT_ANCHORS) -> str:
    """
    Return the CSRF token from the login form.
    """
    doc = parse_document(raw)
    node = find_by_attr(doc, "name", anchors.csrf_input_name)
    if node is None:
        raise PageStructureError(f"login page: did not find {anchors.csrf_input_name} <input>")
    token = attr_val(node, "value")
    if token is None:
        raise PageStructureError(f"login page: unexpected form of {anchors.csrf_input_name}: {render(node)}")
    return token


def _find_table(doc: Tag, table_id: str, *, page: str) -> Tag:
    table = find_by_attr(doc, "id", table_id)
    if table is None or table.name != "table":
        raise PageStructureError(f"{page} page: did not find <table id={table_id!r}>")
    return table


def _find_tbody(table: Tag, *, page: str) -> Tag:
    tbody = find_by_tag(table, "tbody")
    if tbody is None:
        raise PageStructureError(f"{page} page: did not find <tbody> in <table id={attr_val(table, 'id')!r}>")
    return tbody


def _rows(tbody: Tag) -> list[Tag]:
    rows: list[Tag] = []

    def _visit(tr: Tag) -> bool:
        rows.append(tr)
        return False

    each_by_tag(tbody, "tr", _visit)
    return rows


def _cells(row: Tag, tag: str) -> list[Tag]:
    # Don't descend into a matched cell; nested tables/controls are not separate cells.
    cells: list[Tag] = []

    def _visit(cell: Tag) -> bool:
        cells.append(cell)
        return False

    each_by_tag(row, tag, _visit)
    return cells


def _header_index(table: Tag, label: str) -> int:
    thead = find_by_tag(table, "thead")
    if thead is None:
        raise PageStructureError(f"overview page: did not find <thead> in <table id={attr_val(table, 'id')!r}>")
    headers = [" ".join(text(th).split()) for th in _cells(thead, "th")]
    try:
        return headers.index(label)
    except ValueError:
        raise PageStructureError(f"overview page: no {label!r} column (headers: {headers})") from None


def parse_card(name: str, balance: str) -> Card:
    try:
        balance_cents = parse_amount(balance)
    except FieldParseError as e:
        raise FieldParseError(f"bad balance {balance!r}: {e}") from e
    return Card(name=name, balance_cents=balance_cents)


def parse_overview(raw: RawPage, *, anchors: PortalAnchors = DEFAULT_ANCHORS) -> Overview:
    """
    Parse the registered-user dashboard into the list of active cards.

    Only the name and balance columns are read. The active-cards row also carries a selection radio button,
    the card type and the card status; those cells are ignored by position.
    """
    doc = parse_document(raw)
    table = _find_table(doc, anchors.overview_table_id, page="overview")
    wanted = (
        _header_index(table, anchors.overview_name_header),
        _header_index(table, anchors.overview_balance_header),
    )
    tbody = _find_tbody(table, page="overview")

    # One entry per qualifying row: (row number, name, balance text)
    card_rows: list[tuple[int, str, str]] = []
    for row_no, tr in enumerate(_rows(tbody)):
        tds = _cells(tr, "td")
        values = [text(tds[i]).strip() for i in wanted if i < len(tds)]
        if len(values) != 2:
            logger.debug("Skipping overview row %d with %d cells", row_no, len(tds))
            continue
        card_rows.append((row_no, values[0], values[1]))

    cards: list[Card] = []
    for row_no, name, balance in card_rows:
        try:
            cards.append(parse_card(name, balance))
        except FieldParseError as e:
            raise FieldParseError(f"overview page: card row {row_no}: {e}") from e
    return Overview(cards=cards)


def _caption_card_name(table: Tag) -> str:
    # <caption><span>My Opal activity: 314159</span></caption>
    caption = find_by_tag(table, "caption")
    if caption is None or not list(caption.children):
        raise PageStructureError("activity page: did not find <caption>")
    name = text(caption)
    if ":" in name:
        name = name.split(":", 1)[1]
    return name.strip()


def _cell_value(cell: Tag) -> str:
    # <td><img alt="train" ...></td> is read by its alt text
    first = next(iter(cell.children), None)
    if isinstance(first, Tag) and first.name == "img":
        return attr_val(first, "alt") or ""
    return text(cell).strip()


def _optional(value: str, parser: Callable[[str], int]) -> Optional[int]:
    """
    Empty cell -> None (absent). A populated cell must parse.
    """
    if value == "":
        return None
    return parser(value)


def parse_transaction(row: Tag, *, zone: tzinfo, expected_cells: int = 9) -> Transaction:
    tds = [_cell_value(kid) for kid in child_elements(row) if kid.name in ("td", "th")]
    if len(tds) != expected_cells:
        raise PageStructureError(f"transaction row with {len(tds)} TDs, want {expected_cells}")

    try:
        number = parse_decimal(tds[0])
    except FieldParseError as e:
        raise FieldParseError(f"bad transaction number {tds[0]!r}: {e}") from e
    try:
        when = parse_portal_timestamp(tds[1], zone)
    except FieldParseError as e:
        raise FieldParseError(f"bad time {tds[1]!r}: {e}") from e

    optional: dict[str, Optional[int]] = {}
    for index, key, parser, label in (
        (4, "journey_number", parse_decimal, "journey number"),
        (6, "fare_cents", parse_amount, "fare"),
        (7, "discount_cents", parse_amount, "discount"),
        (8, "amount_cents", parse_amount, "amount"),
    ):
        try:
            optional[key] = _optional(tds[index], parser)
        except FieldParseError as e:
            raise FieldParseError(f"bad {label} {tds[index]!r}: {e}") from e

    return Transaction(
        number=number,
        when=when,
        mode=tds[2],
        details=tds[3].strip(),
        fare_applied=tds[5].strip(),
        **{k: (v if v is not None else 0) for k, v in optional.items()},
    )


def parse_activity(raw: RawPage, *, zone: tzinfo, anchors: PortalAnchors = DEFAULT_ANCHORS) -> Activity:
    """
    Parse a card's transaction page. Rows are kept in page order.
    """
    doc = parse_document(raw)
    table = _find_table(doc, anchors.activity_table_id, page="activity")
    card_name = _caption_card_name(table)
    tbody = _find_tbody(table, page="activity")

    transactions: list[Transaction] = []
    for row_no, tr in enumerate(_rows(tbody)):
        try:
            transactions.append(parse_transaction(tr, zone=zone, expected_cells=anchors.activity_row_cells))
        except PageStructureError as e:
            raise PageStructureError(f"activity page: row {row_no}: {e}") from e
        except FieldParseError as e:
            raise FieldParseError(f"activity page: row {row_no}: {e}") from e
    return Activity(card_name=card_name, transactions=transactions)
