"""
csv_transfer.py
Member list export to CSV and best-effort import back into the store.
"""

from __future__ import annotations

import io
import logging
from datetime import date

import pandas as pd

import db
from config import settings
from errors import ParseError, StoreWriteError
from models import Member, membership_label
from utils import derive_status, format_dmy, format_price, parse_date, parse_price

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ["ID", "Name", "Mobile", "Join Date", "Membership Type", "Price", "Expiry Date", "Status"]

MIN_FIELDS = 6

# Label fragment -> plan code; later matches win, anything else is a 1 month plan
LABEL_TO_PLAN = (
    ("3 Month", "3"),
    ("6 Month", "6"),
    ("1 Year", "12"),
)


def plan_from_label(label: str) -> str:
    plan = "1"
    for fragment, code in LABEL_TO_PLAN:
        if fragment in label:
            plan = code
    return plan


def export_members_csv(members: list[Member], now=None, currency: str | None = None) -> bytes:
    """
    All members (search filter ignored), status derived as of now.
    Fields containing commas or quotes are quoted, so they survive a re-import.
    """
    currency = settings.CURRENCY if currency is None else currency
    rows = [
        {
            "ID": m.id,
            "Name": m.name,
            "Mobile": m.mobile,
            "Join Date": format_dmy(m.join_date),
            "Membership Type": membership_label(m.membership_type),
            "Price": format_price(m.price, currency),
            "Expiry Date": format_dmy(m.expiry_date),
            "Status": derive_status(m.expiry_date, now),
        }
        for m in members
    ]
    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    return df.to_csv(index=False, lineterminator="\n").encode("utf-8")


def export_filename(today: date | None = None) -> str:
    today = today or date.today()
    return f"gym-members-{today.strftime('%d-%m-%Y')}.csv"


def _read_frame(text: str) -> pd.DataFrame:
    # Wide enough for the longest line, so an unquoted comma never turns a row
    # into a "bad line" or pushes column 0 into the index; _parse_row decides.
    width = max([len(EXPORT_COLUMNS)] + [line.count(",") + 1 for line in text.splitlines()])
    try:
        return pd.read_csv(
            io.StringIO(text),
            header=None,
            names=list(range(width)),
            index_col=False,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.ParserError as e:
        raise ParseError(f"Could not read CSV: {e}") from e


def _is_header(values: list) -> bool:
    return [str(v).strip() for v in values[:2]] == EXPORT_COLUMNS[:2]


def _parse_row(values: list, now, currency: str) -> dict:
    present = [str(v).strip() for v in values if isinstance(v, str)]
    if len(present) < MIN_FIELDS:
        raise ParseError(f"Expected at least {MIN_FIELDS} fields, got {len(present)}.")
    if len(present) > len(EXPORT_COLUMNS):
        raise ParseError(f"Expected at most {len(EXPORT_COLUMNS)} fields, got {len(present)} (unquoted comma?).")

    name, mobile = present[1], present[2]
    if not name or not mobile:
        raise ParseError("Name and mobile are required.")

    join = parse_date(present[3])
    price = parse_price(present[5], currency)
    if price < 0:
        raise ParseError(f"Invalid price {present[5]!r}.")
    if len(present) < 7 or not present[6]:
        raise ParseError("Missing expiry date.")
    expiry = parse_date(present[6])

    return {
        "name": name,
        "mobile": mobile,
        "join_date": join.isoformat(),
        "membership_type": plan_from_label(present[4]),
        "expiry_date": expiry.isoformat(),
        # status follows the expiry date written in the file, not a recomputed one
        "status": derive_status(expiry, now),
        "price": price,
    }


def parse_members_csv(text: str, now=None, currency: str | None = None) -> tuple[list[dict], list[str]]:
    """
    Returns (records ready for the store, reasons for skipped rows).
    """
    currency = settings.CURRENCY if currency is None else currency
    text = text.lstrip("\ufeff")
    if not text.strip():
        return [], []

    frame = _read_frame(text)
    records: list[dict] = []
    skipped: list[str] = []
    for i, values in enumerate(frame.itertuples(index=False, name=None)):
        values = list(values)
        if i == 0 and _is_header(values):
            continue
        try:
            records.append(_parse_row(values, now, currency))
        except ParseError as e:
            skipped.append(f"Row {i + 1}: {e}")
    return records, skipped


def import_members_csv(data, now=None, currency: str | None = None) -> int:
    """
    One store write per valid row, in file order. Rows already written stay
    written if a later one fails.
    """
    text = data.decode("utf-8-sig") if isinstance(data, bytes) else data
    records, skipped = parse_members_csv(text, now, currency)
    for reason in skipped:
        logger.warning("Skipped CSV row. %s", reason)

    imported = 0
    for record in records:
        try:
            db.create_member(record)
        except StoreWriteError:
            logger.error("Import stopped after %d member(s)", imported)
            raise
        imported += 1

    if imported == 0:
        raise ParseError("No valid members found in CSV. Please check the CSV format.")
    logger.info("Imported %d member(s), skipped %d row(s)", imported, len(skipped))
    return imported
