import sqlite3

from sqlalchemy.exc import IntegrityError

from foodcourt.errors import DuplicateKey, ValidationFailed, integrity_error


def _integrity(message: str) -> IntegrityError:
    return IntegrityError("INSERT INTO kot ...", {}, sqlite3.IntegrityError(message))


def test_unique_violations_are_duplicates() -> None:
    error = integrity_error(_integrity("UNIQUE constraint failed: kot.kot_number"))
    assert isinstance(error, DuplicateKey)
    assert error.status_code == 400
    assert error.message == "Duplicate value for a unique field"


def test_other_constraint_violations_are_validation_errors() -> None:
    for message in (
        "NOT NULL constraint failed: item.minimum_stock",
        "CHECK constraint failed: coupon_value_non_negative",
        "FOREIGN KEY constraint failed",
    ):
        error = integrity_error(_integrity(message))
        assert isinstance(error, ValidationFailed)
        assert not isinstance(error, DuplicateKey)
        assert error.message == "Value violates a database constraint"
        assert error.error == message
