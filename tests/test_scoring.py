from datetime import datetime, timedelta, timezone

import pytest

from virtual_queue.models import QueueEntry, QueueSettings
from virtual_queue.scoring import by_priority, priority_score, score_entries

NOW = datetime(2025, 10, 6, 13, 0, tzinfo=timezone.utc)


def _settings(eta=1.0, position=1.0, bonus=0.5):
    return QueueSettings(eta_weight=eta, position_weight=position, wait_time_bonus=bonus, buffer_percentage=0)


def _entry(travel, waited):
    return QueueEntry(travel_minutes=travel, created_at=NOW.replace(tzinfo=None) - timedelta(minutes=waited))


def test_priority_score_formula():
    # 1*(100-15) + 1*(100-0) + 0.5*30
    assert priority_score(_settings(), travel_minutes=15, queue_index=0, wait_minutes=30) == pytest.approx(200)


def test_wait_bonus_is_capped_at_sixty_minutes():
    capped = priority_score(_settings(), travel_minutes=15, queue_index=0, wait_minutes=90)
    assert capped == priority_score(_settings(), travel_minutes=15, queue_index=0, wait_minutes=60)


def test_score_entries_uses_fifo_position():
    entries = [_entry(15, 20), _entry(15, 10), _entry(15, 0)]
    scored = score_entries(entries, _settings(position=2.0, bonus=0), NOW)

    assert [s.queue_index for s in scored] == [0, 1, 2]
    assert [s.entry for s in scored] == entries
    assert scored[0].score - scored[1].score == pytest.approx(2.0)


def test_by_priority_sorts_descending_and_keeps_fifo_on_ties():
    entries = [_entry(30, 0), _entry(10, 0), _entry(30, 0)]
    scored = score_entries(entries, _settings(position=0, bonus=0), NOW)

    ordered = by_priority(scored)

    assert [s.queue_index for s in ordered] == [1, 0, 2]
