from datetime import date

import pytest

from ledger.errors import BatchWriteError
from ledger.services.materialize import materialize, plan_occurrences, select_templates
from ledger.services.normalizer import normalize_all

from conftest import make_record, make_template


def snapshot(repo, user_id="alice"):
    return normalize_all(repo.list_for_user(user_id))


def instances(repo, user_id="alice"):
    return sorted(
        (tx for tx in snapshot(repo, user_id) if not tx.is_recurring),
        key=lambda tx: tx.date,
    )


class FailingRepository:
    def __init__(self, repo):
        self.repo = repo
        self.calls = 0

    def batch_write(self, records):
        self.calls += 1
        # NOT NULL violation on the last row makes the whole commit fail
        broken = list(records) + [make_record(description=None)]
        return self.repo.batch_write(broken)


def test_rent_scenario(repo):
    repo.create(make_template())

    result = materialize("alice", snapshot(repo), date(2024, 4, 5), repo)

    assert result.created == 4
    assert result.errors == []
    rows = instances(repo)
    assert [tx.date for tx in rows] == ["2024-01-01", "2024-02-01", "2024-03-01", "2024-04-01"]
    for tx in rows:
        assert tx.is_recurring is False
        assert tx.recurrence_frequency == "none"
        assert tx.recurrence_end_date is None
        assert (tx.description, tx.amount, tx.type, tx.category, tx.user_id) == (
            "Rent", 1500.0, "expense", "Housing", "alice",
        )


def test_second_pass_creates_nothing(repo):
    repo.create(make_template())
    materialize("alice", snapshot(repo), date(2024, 4, 5), repo)

    again = materialize("alice", snapshot(repo), date(2024, 4, 5), repo)

    assert again.created == 0
    assert again.up_to_date
    assert len(instances(repo)) == 4


def test_later_pass_only_adds_new_dates(repo):
    repo.create(make_template(date="2024-03-15"))
    materialize("alice", snapshot(repo), date(2024, 4, 20), repo)

    result = materialize("alice", snapshot(repo), date(2024, 7, 1), repo)

    assert [r["date"] for r in result.records] == ["2024-05-15", "2024-06-15"]
    assert len(instances(repo)) == 4


def test_end_date_bound(repo):
    repo.create(make_template(description="Gym", date="2024-01-01", recurrenceFrequency="weekly", recurrenceEndDate="2024-01-15"))

    result = materialize("alice", snapshot(repo), date(2030, 1, 1), repo)

    assert result.created == 3
    assert [tx.date for tx in instances(repo)] == ["2024-01-01", "2024-01-08", "2024-01-15"]


def test_month_end_anchor(repo):
    repo.create(make_template(date="2024-01-31"))

    materialize("alice", snapshot(repo), date(2024, 5, 1), repo)

    assert [tx.date for tx in instances(repo)] == ["2024-01-31", "2024-02-29", "2024-03-31", "2024-04-30"]


def test_manual_entry_blocks_its_date(repo):
    repo.create(make_template())
    repo.create(make_record(description="Rent", amount=1500.0, category="Housing", date="2024-02-01"))

    result = materialize("alice", snapshot(repo), date(2024, 4, 5), repo)

    assert [r["date"] for r in result.records] == ["2024-01-01", "2024-03-01", "2024-04-01"]
    assert [tx.date for tx in instances(repo)].count("2024-02-01") == 1


def test_invalid_frequency_only_affects_its_template(repo):
    repo.create(make_template())
    bad = repo.create(make_template(description="Magazine", amount=9.99, recurrenceFrequency="fortnightly"))

    result = materialize("alice", snapshot(repo), date(2024, 4, 5), repo)

    assert result.created == 4
    assert len(result.errors) == 1
    assert result.errors[0].template_id == bad["id"]
    assert {tx.description for tx in instances(repo)} == {"Rent"}


def test_unparseable_anchor_is_skipped(repo, caplog):
    repo.create(make_template())
    repo.create(make_template(description="Broken", date="someday"))

    result = materialize("alice", snapshot(repo), date(2024, 4, 5), repo)

    assert result.created == 4
    assert len(result.errors) == 1
    assert "anchor" in result.errors[0].reason
    assert "Skipping template" in caplog.text


def test_runaway_template_is_cut_at_limit(repo):
    repo.create(make_template(description="Daily", recurrenceFrequency="daily", date="2020-01-01"))
    repo.create(make_template())

    result = materialize("alice", snapshot(repo), date(2024, 4, 5), repo, limit=50)

    daily = [r for r in result.records if r["description"] == "Daily"]
    assert len(daily) == 50
    assert len(result.errors) == 1
    assert "limit" in result.errors[0].reason


def test_batch_failure_persists_nothing(repo):
    repo.create(make_template())
    failing = FailingRepository(repo)

    with pytest.raises(BatchWriteError):
        materialize("alice", snapshot(repo), date(2024, 4, 5), failing)

    assert failing.calls == 1
    assert instances(repo) == []

    # next pass retries from scratch
    result = materialize("alice", snapshot(repo), date(2024, 4, 5), repo)
    assert result.created == 4


def test_nothing_to_do_skips_the_write():
    class NoWrites:
        def batch_write(self, records):
            raise AssertionError("should not be called")

    result = materialize("alice", [], date(2024, 4, 5), NoWrites())
    assert result.created == 0


def test_identical_templates_share_one_instance_per_date():
    templates = normalize_all([make_template(id=1), make_template(id=2)])
    plan = plan_occurrences("alice", templates, date(2024, 2, 10))
    assert [r["date"] for r in plan.records] == ["2024-01-01", "2024-02-01"]


def test_instances_are_scoped_to_the_owner(repo):
    repo.create(make_template())
    repo.create(make_template(userId="bob"))

    materialize("alice", snapshot(repo), date(2024, 2, 5), repo)

    assert len(instances(repo, "alice")) == 2
    assert instances(repo, "bob") == []


def test_only_recurring_records_with_a_frequency_are_templates():
    records = normalize_all([
        make_template(id=1),
        make_template(id=2, recurrenceFrequency="none"),
        make_record(id=3),
        make_record(id=4, isRecurring="false", recurrenceFrequency="monthly"),
    ])
    assert [tx.id for tx in select_templates(records)] == [1]
    assert [tx.id for tx in records if tx.is_template] == [1]
