from datetime import date

from ledger.services.duplicates import MaterializedIndex, is_already_materialized
from ledger.services.normalizer import normalize

from conftest import make_record, make_template


def test_matching_entry_on_same_day_counts():
    template = normalize(make_template())
    known = [normalize(make_record(description="Rent", amount=1500.0, category="Housing", date="2024-02-01"))]
    assert is_already_materialized(template, date(2024, 2, 1), known)
    assert not is_already_materialized(template, date(2024, 3, 1), known)


def test_time_of_day_is_ignored():
    template = normalize(make_template())
    known = [normalize(make_record(description="Rent", amount=1500.0, category="Housing", date="2024-02-01T22:00:00+02:00"))]
    assert is_already_materialized(template, date(2024, 2, 1), known)


def test_any_field_difference_is_not_a_match():
    template = normalize(make_template())
    for change in (
        {"amount": 1499.0},
        {"description": "rent"},
        {"category": "Bills"},
        {"type": "income"},
    ):
        fields = dict(description="Rent", amount=1500.0, category="Housing", date="2024-02-01")
        fields.update(change)
        known = [normalize(make_record(**fields))]
        assert not is_already_materialized(template, date(2024, 2, 1), known), change


def test_template_itself_is_not_an_instance():
    template = normalize(make_template())
    assert not is_already_materialized(template, date(2024, 1, 1), [template])


def test_index_agrees_and_accepts_pending_candidates():
    template = normalize(make_template())
    known = [template, normalize(make_record(description="Rent", amount=1500.0, category="Housing", date="2024-02-01"))]
    index = MaterializedIndex(known)
    assert len(index) == 1
    assert index.contains(template, date(2024, 2, 1))
    assert not index.contains(template, date(2024, 3, 1))
    index.add(template, date(2024, 3, 1))
    assert index.contains(template, date(2024, 3, 1))
