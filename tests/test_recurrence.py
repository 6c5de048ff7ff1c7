from datetime import date

import pytest

from ledger.errors import OccurrenceLimitExceeded, UnsupportedFrequency
from ledger.services.recurrence import generate_occurrences, nth_occurrence


def test_monthly_includes_anchor_and_stops_at_as_of():
    dates = list(generate_occurrences(date(2024, 1, 1), "monthly", None, date(2024, 4, 5)))
    assert dates == [date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 1), date(2024, 4, 1)]


def test_as_of_equal_to_occurrence_is_included():
    dates = list(generate_occurrences(date(2024, 1, 1), "weekly", None, date(2024, 1, 15)))
    assert dates[-1] == date(2024, 1, 15)
    assert len(dates) == 3


def test_weekly_end_date_bound():
    dates = list(generate_occurrences(date(2024, 1, 1), "weekly", date(2024, 1, 15), date(2030, 1, 1)))
    assert dates == [date(2024, 1, 1), date(2024, 1, 8), date(2024, 1, 15)]


def test_daily_and_yearly():
    assert list(generate_occurrences(date(2024, 2, 27), "daily", None, date(2024, 3, 1))) == [
        date(2024, 2, 27),
        date(2024, 2, 28),
        date(2024, 2, 29),
        date(2024, 3, 1),
    ]
    assert list(generate_occurrences(date(2020, 6, 15), "yearly", None, date(2023, 6, 14))) == [
        date(2020, 6, 15),
        date(2021, 6, 15),
        date(2022, 6, 15),
    ]


def test_month_end_anchor_is_clamped_without_drift():
    dates = list(generate_occurrences(date(2024, 1, 31), "monthly", None, date(2024, 6, 30)))
    assert dates == [
        date(2024, 1, 31),
        date(2024, 2, 29),
        date(2024, 3, 31),
        date(2024, 4, 30),
        date(2024, 5, 31),
        date(2024, 6, 30),
    ]
    # one per month, no month skipped or repeated
    assert [d.month for d in dates] == [1, 2, 3, 4, 5, 6]


def test_leap_day_yearly_returns_to_29th():
    assert nth_occurrence(date(2024, 2, 29), "yearly", 1) == date(2025, 2, 28)
    assert nth_occurrence(date(2024, 2, 29), "yearly", 4) == date(2028, 2, 29)


def test_anchor_after_as_of_gives_nothing():
    assert list(generate_occurrences(date(2024, 5, 1), "monthly", None, date(2024, 4, 30))) == []


def test_end_date_before_anchor_gives_nothing():
    assert list(generate_occurrences(date(2024, 5, 1), "daily", date(2024, 4, 1), date(2025, 1, 1))) == []


def test_generator_is_restartable():
    args = (date(2024, 1, 1), "daily", None, date(2024, 1, 3))
    assert list(generate_occurrences(*args)) == list(generate_occurrences(*args))


def test_unsupported_frequency():
    with pytest.raises(UnsupportedFrequency):
        list(generate_occurrences(date(2024, 1, 1), "fortnightly", None, date(2024, 2, 1)))


def test_iteration_ceiling():
    gen = generate_occurrences(date(2000, 1, 1), "daily", None, date(2024, 1, 1), limit=10)
    produced = []
    with pytest.raises(OccurrenceLimitExceeded):
        for d in gen:
            produced.append(d)
    assert len(produced) == 10
