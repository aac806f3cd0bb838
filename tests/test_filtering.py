"""Tests for search, status filtering and sorting."""

from datetime import datetime, timezone

from clubconsole.moderation.filtering import apply_filter_sort, matches_search, sort_records
from clubconsole.moderation.kinds import APPLICATIONS, MESSAGES, USERS
from clubconsole.moderation.models import ALL, FilterSortSpec, ModerationRecord, SortDirection


def _at(day: int) -> datetime:
    return datetime(2024, 5, day, tzinfo=timezone.utc)


def _application(rid, first, last, email, status="pending", day=1) -> ModerationRecord:
    return ModerationRecord(
        id=rid,
        status=status,
        created_at=_at(day),
        payload={"firstName": first, "lastName": last, "email": email},
    )


APPS = [
    _application("a1", "Meera", "Iyer", "meera@x.com", "pending", 3),
    _application("a2", "Raj", "Kumar", "raj@x.com", "approved", 1),
    _application("a3", "Anu", "Meeran", "anu@x.com", "rejected", 2),
    _application("a4", "Dev", "Shah", "dev@meera.org", "pending", 4),
]


def test_search_matches_any_field_case_insensitively():
    view = apply_filter_sort(APPLICATIONS, APPS, FilterSortSpec(search_term="MEERA"))
    assert {r.id for r in view} == {"a1", "a3", "a4"}


def test_search_matches_full_name():
    view = apply_filter_sort(APPLICATIONS, APPS, FilterSortSpec(search_term="meera iyer"))
    assert [r.id for r in view] == ["a1"]


def test_blank_search_matches_everything():
    assert matches_search(APPLICATIONS, APPS[0], "   ")


def test_status_filter_and_all_sentinel():
    pending = apply_filter_sort(APPLICATIONS, APPS, FilterSortSpec(status_filter="pending"))
    assert {r.id for r in pending} == {"a1", "a4"}
    everything = apply_filter_sort(APPLICATIONS, APPS, FilterSortSpec(status_filter=ALL))
    assert len(everything) == len(APPS)


def test_search_and_status_combine():
    view = apply_filter_sort(
        APPLICATIONS, APPS, FilterSortSpec(search_term="meera", status_filter="pending")
    )
    assert [r.id for r in view] == ["a4", "a1"]


def test_default_sort_is_newest_first():
    view = apply_filter_sort(APPLICATIONS, APPS, FilterSortSpec())
    assert [r.id for r in view] == ["a4", "a1", "a3", "a2"]


def test_ascending_sort_by_created_at():
    view = apply_filter_sort(APPLICATIONS, APPS, FilterSortSpec(sort_direction=SortDirection.asc))
    assert [r.id for r in view] == ["a2", "a3", "a1", "a4"]


def test_projection_is_idempotent_and_does_not_mutate_input():
    records = list(APPS)
    spec = FilterSortSpec(search_term="x.com", sort_field="email", sort_direction="asc")
    once = apply_filter_sort(APPLICATIONS, records, spec)
    twice = apply_filter_sort(APPLICATIONS, once, spec)
    assert once == twice
    assert records == APPS


def test_string_sort_ignores_case():
    users = [
        ModerationRecord(id="1", status="user", payload={"displayName": "bob"}),
        ModerationRecord(id="2", status="user", payload={"displayName": "Alice"}),
        ModerationRecord(id="3", status="user", payload={"displayName": "carol"}),
    ]
    ordered = sort_records(USERS, users, "displayName", SortDirection.asc)
    assert [r.id for r in ordered] == ["2", "1", "3"]


def test_sort_is_stable_for_equal_keys():
    records = [
        ModerationRecord(id=str(i), status="pending", created_at=_at(1), payload={"subject": "Hi"})
        for i in range(5)
    ]
    for direction in SortDirection:
        ordered = sort_records(MESSAGES, records, "subject", direction)
        assert [r.id for r in ordered] == ["0", "1", "2", "3", "4"]


def test_missing_values_sort_last_in_both_directions():
    records = [
        ModerationRecord(id="none", status="pending"),
        ModerationRecord(id="old", status="pending", created_at=_at(1)),
        ModerationRecord(id="new", status="pending", created_at=_at(9)),
    ]
    assert [r.id for r in sort_records(MESSAGES, records, "createdAt", SortDirection.desc)] == [
        "new", "old", "none",
    ]
    assert [r.id for r in sort_records(MESSAGES, records, "createdAt", SortDirection.asc)] == [
        "old", "new", "none",
    ]


def test_sort_by_status():
    view = apply_filter_sort(
        APPLICATIONS, APPS, FilterSortSpec(sort_field="status", sort_direction="asc")
    )
    assert [r.status for r in view] == ["approved", "pending", "pending", "rejected"]
