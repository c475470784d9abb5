from datetime import date

from foodcourt import sequence
from foodcourt.models import SequenceCounter
from foodcourt.sequence import (
    BILL_WIDTH,
    KOT_PREFIX,
    KOT_WIDTH,
    PURCHASE_PREFIX,
    allocate_number,
    bill_prefix,
    date_key,
    next_number,
)


def test_next_number_starts_at_one_on_an_empty_day() -> None:
    assert next_number("KOT", "20240105", [], KOT_WIDTH) == "KOT20240105001"


def test_next_number_follows_the_highest_suffix() -> None:
    existing = ["MGGST202401050007", "MGGST202401050002", "MGGST202401050011"]
    assert next_number("MGGST", "20240105", existing, BILL_WIDTH) == "MGGST202401050012"


def test_next_number_ignores_other_days_prefixes_and_junk() -> None:
    existing = [
        "MGGST202401040099",
        "MGEST202401050050",
        "MGGST20240105abcd",
        "",
        "MGGST202401050003",
    ]
    assert next_number("MGGST", "20240105", existing, BILL_WIDTH) == "MGGST202401050004"


def test_date_key_and_bill_prefix() -> None:
    assert date_key(date(2024, 1, 5)) == "20240105"
    assert bill_prefix("GST") == "MGGST"
    assert bill_prefix("Non-GST") == "MGEST"
    assert bill_prefix("Estimation") == "MGEST"


def test_allocate_number_counts_per_prefix_and_day(db) -> None:
    day = date(2024, 1, 5)
    assert allocate_number(db, KOT_PREFIX, KOT_WIDTH, day) == "KOT20240105001"
    assert allocate_number(db, KOT_PREFIX, KOT_WIDTH, day) == "KOT20240105002"
    assert allocate_number(db, PURCHASE_PREFIX, 4, day) == "PUR202401050001"
    assert allocate_number(db, KOT_PREFIX, KOT_WIDTH, date(2024, 1, 6)) == "KOT20240106001"
    assert allocate_number(db, KOT_PREFIX, KOT_WIDTH, day) == "KOT20240105003"
    db.commit()


def test_allocate_number_retries_when_the_counter_already_exists(db, monkeypatch) -> None:
    day = date(2024, 1, 5)
    db.add(SequenceCounter(prefix=KOT_PREFIX, date_key=date_key(day), value=4))
    db.commit()
    real_bump = sequence._bump
    calls = []

    def stale_bump(session, prefix, key):
        calls.append(key)
        if len(calls) == 1:
            # misses, as if the counter row appeared right after this check
            return real_bump(session, prefix, "00000000")
        return real_bump(session, prefix, key)

    monkeypatch.setattr(sequence, "_bump", stale_bump)

    assert allocate_number(db, KOT_PREFIX, KOT_WIDTH, day) == "KOT20240105005"
    assert len(calls) == 2
    db.commit()
    assert db.query(SequenceCounter).filter(SequenceCounter.prefix == KOT_PREFIX).count() == 1
