"""Human-readable document numbers: prefix + YYYYMMDD + zero padded daily sequence."""

import logging
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from foodcourt.config import settings
from foodcourt.models import SequenceCounter

logger = logging.getLogger(__name__)

KOT_PREFIX = "KOT"
KOT_WIDTH = 3
GST_BILL_PREFIX = "MGGST"
ESTIMATE_BILL_PREFIX = "MGEST"
BILL_WIDTH = 4
PURCHASE_PREFIX = "PUR"
PURCHASE_WIDTH = 4


def today() -> date:
    return datetime.now(ZoneInfo(settings.business_timezone)).date()


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """UTC instants delimiting a calendar day in the business timezone."""
    tz = ZoneInfo(settings.business_timezone)
    starts_at = datetime.combine(day, time.min, tzinfo=tz)
    ends_at = starts_at + timedelta(days=1)
    return starts_at.astimezone(timezone.utc), ends_at.astimezone(timezone.utc)


def date_key(day: date) -> str:
    return day.strftime("%Y%m%d")


def bill_prefix(bill_type: str) -> str:
    return GST_BILL_PREFIX if bill_type == "GST" else ESTIMATE_BILL_PREFIX


def format_number(prefix: str, key: str, sequence: int, width: int) -> str:
    return f"{prefix}{key}{sequence:0{width}d}"


def next_number(prefix: str, key: str, existing_numbers: Iterable[str], width: int) -> str:
    """Return the number after the highest one already issued for ``prefix + key``.

    Identifiers for other prefixes or days, and ones whose suffix is not
    numeric, are ignored. An empty day starts at 1.
    """
    stem = f"{prefix}{key}"
    highest = 0
    for number in existing_numbers:
        if not number or not number.startswith(stem):
            continue
        suffix = number[len(stem):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return format_number(prefix, key, highest + 1, width)


def _bump(db: Session, prefix: str, key: str) -> int | None:
    result = db.execute(
        update(SequenceCounter)
        .where(SequenceCounter.prefix == prefix, SequenceCounter.date_key == key)
        .values(value=SequenceCounter.value + 1)
    )
    if result.rowcount == 0:
        return None
    return db.execute(
        select(SequenceCounter.value).where(
            SequenceCounter.prefix == prefix, SequenceCounter.date_key == key
        )
    ).scalar_one()


def allocate_number(db: Session, prefix: str, width: int, day: date | None = None) -> str:
    """Atomically reserve the next number for ``prefix`` on ``day``.

    The counter row is incremented in place, so two concurrent callers never
    receive the same value. The increment joins the caller's transaction.
    """
    key = date_key(day or today())
    value = _bump(db, prefix, key)
    if value is None:
        try:
            with db.begin_nested():
                db.add(SequenceCounter(prefix=prefix, date_key=key, value=1))
            value = 1
        except IntegrityError:
            # another request created today's counter first
            value = _bump(db, prefix, key)
            if value is None:
                raise
    number = format_number(prefix, key, value, width)
    logger.debug("allocated %s", number)
    return number
