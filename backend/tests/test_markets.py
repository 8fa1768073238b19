from __future__ import annotations

import pytest

from app.domain import Event
from ingestion.markets import (
    collect_markets,
    group_markets,
    market_sort_key,
    normalize_market,
    unique_market_ids,
)


def _event(markets, event_id="1") -> Event:
    return Event.from_payload({"id": event_id, "markets": markets})


def _ids(rows):
    return [row.id for row in rows]


def test_collect_markets_default_flags_on_sample(sample_event_payload):
    event = Event.from_payload(sample_event_payload)

    rows = collect_markets(event, include_closed=False, include_proposed=False)

    assert _ids(rows) == ["512340"]
    assert rows[0].label == "Will X happen by June?"
    assert rows[0].state_label == "Open"


def test_collect_markets_everything_included_is_sorted(sample_event_payload):
    event = Event.from_payload(sample_event_payload)

    rows = collect_markets(event, include_closed=True, include_proposed=True)

    assert _ids(rows) == ["98", "1200", "512340"]
    closed, proposed, _open = rows
    assert closed.state_label == "Closed"
    assert closed.label == "March"
    assert closed.uma_status == "settled"
    assert proposed.state_label == "Proposed"
    assert proposed.uma_status == "proposed"


def test_toggles_only_add_rows_matching_their_predicate(sample_event_payload):
    event = Event.from_payload(sample_event_payload)
    base = set(_ids(collect_markets(event, False, False)))

    with_closed = collect_markets(event, True, False)
    with_proposed = collect_markets(event, False, True)

    assert {row.id for row in with_closed if row.id not in base} == {"98"}
    assert all(row.closed for row in with_closed if row.id not in base)
    assert {row.id for row in with_proposed if row.id not in base} == {"1200"}
    assert all(row.proposed for row in with_proposed if row.id not in base)


def test_filter_is_idempotent(sample_event_payload):
    event = Event.from_payload(sample_event_payload)
    assert collect_markets(event, True, False) == collect_markets(event, True, False)


def test_closed_and_proposed_market_needs_both_flags():
    event = _event([{"id": 5, "closed": True, "umaResolutionStatus": "proposed"}])

    assert collect_markets(event, True, False) == []
    assert collect_markets(event, False, True) == []
    [row] = collect_markets(event, True, True)
    assert row.state_label == "Proposed"
    assert row.closed and row.proposed


def test_zero_is_a_valid_id_and_missing_ids_are_skipped():
    event = _event(
        [
            {"id": 0, "question": "Zero"},
            {"market_id": "77", "question": "Fallback id key"},
            {"id": None, "question": "No id"},
            {"id": "", "question": "Blank id"},
            {"question": "Absent id"},
        ]
    )

    rows = collect_markets(event, True, True)

    assert _ids(rows) == ["0", "77"]


def test_label_falls_back_through_question_title_slug_then_id():
    event = _event(
        [
            {"id": 1, "question": "Q", "groupItemTitle": "G", "slug": "s"},
            {"id": 2, "question": "", "groupItemTitle": "G", "slug": "s"},
            {"id": 3, "question": None, "groupItemTitle": "", "slug": "s"},
            {"id": 4},
        ]
    )

    labels = [row.label for row in collect_markets(event, True, True)]

    assert labels == ["Q", "G", "s", "Market 4"]


def test_numeric_ids_sort_numerically_before_non_numeric():
    event = _event([{"id": "abc"}, {"id": "10"}, {"id": "2"}])

    assert _ids(collect_markets(event, True, True)) == ["2", "10", "abc"]


@pytest.mark.parametrize("odd_id", ["1_0", "inf", "nan"])
def test_ids_outside_plain_decimal_form_sort_as_text(odd_id):
    event = _event([{"id": odd_id}, {"id": "abc"}, {"id": "9"}])

    assert _ids(collect_markets(event, True, True)) == ["9", *sorted([odd_id, "abc"])]


@pytest.mark.parametrize(
    "ids",
    [
        ["10", "9", "1a"],
        ["1a", "10", "9"],
        ["9", "1a", "10"],
    ],
)
def test_sort_order_does_not_depend_on_provider_order(ids):
    assert sorted(ids, key=market_sort_key) == ["9", "10", "1a"]


def test_normalize_market_uses_resolution_status_literal():
    market = normalize_market({"id": "1", "umaResolutionStatus": "Proposed"})
    assert market is not None
    assert market.proposed is False
    assert market.uma_status == "Proposed"


def test_unique_market_ids_across_events_keeps_first_occurrence():
    groups = group_markets(
        [
            _event([{"id": "3"}, {"id": "1"}], event_id="a"),
            _event([{"id": "1"}, {"id": "2"}], event_id="b"),
        ],
        include_closed=True,
        include_proposed=True,
    )

    assert unique_market_ids(groups) == ["1", "3", "2"]
