from datetime import date, datetime
from decimal import Decimal

import pytest

from frontdesk.errors import ValidationError
from frontdesk.services.pricing import compute_total, count_nights


def test_three_nights_at_100():
    assert compute_total(100, date(2024, 6, 1), date(2024, 6, 4)) == Decimal("300.00")


def test_total_does_not_depend_on_rate_representation():
    d1, d2 = date(2024, 6, 1), date(2024, 6, 4)
    assert compute_total(Decimal("100"), d1, d2) == compute_total(100.0, d1, d2) == compute_total("100.00", d1, d2)


def test_repeated_recomputation_stays_exact():
    # 0.1 has no exact binary representation
    total = compute_total(0.1, date(2024, 1, 1), date(2024, 1, 11))
    assert total == Decimal("1.00")
    for _ in range(50):
        total = compute_total(total / 10, date(2024, 1, 1), date(2024, 1, 11))
    assert total == Decimal("1.00")


def test_rounds_half_up_to_cents():
    assert compute_total(Decimal("33.335"), date(2024, 6, 1), date(2024, 6, 2)) == Decimal("33.34")


def test_single_night_minimum():
    assert count_nights(date(2024, 6, 1), date(2024, 6, 2)) == 1


def test_partial_days_are_rounded_up():
    assert count_nights(datetime(2024, 6, 1, 14, 0), datetime(2024, 6, 3, 11, 0)) == 2
    assert count_nights(datetime(2024, 6, 1, 14, 0), datetime(2024, 6, 3, 15, 0)) == 3


@pytest.mark.parametrize("check_out", [date(2024, 6, 1), date(2024, 5, 31)])
def test_rejects_empty_or_inverted_range(check_out):
    with pytest.raises(ValidationError):
        compute_total(100, date(2024, 6, 1), check_out)


def test_rejects_negative_rate():
    with pytest.raises(ValidationError):
        compute_total(-1, date(2024, 6, 1), date(2024, 6, 2))
