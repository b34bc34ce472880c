from datetime import datetime, timezone

import pytest

from virtual_queue.timeutils import FixedClock, TimeNormalizer, from_storage, round_up_to_grid, to_storage


def test_to_local_applies_fixed_offset():
    normalizer = TimeNormalizer(-3)
    local = normalizer.to_local(datetime(2025, 10, 6, 13, 0, tzinfo=timezone.utc))
    assert local == datetime(2025, 10, 6, 10, 0)
    assert local.tzinfo is None


def test_to_local_crosses_midnight():
    normalizer = TimeNormalizer(-3)
    assert normalizer.to_local(datetime(2025, 10, 7, 1, 30, tzinfo=timezone.utc)) == datetime(2025, 10, 6, 22, 30)


def test_to_utc_is_inverse_of_to_local():
    normalizer = TimeNormalizer(-3)
    instant = datetime(2025, 10, 6, 13, 17, tzinfo=timezone.utc)
    assert normalizer.to_utc(normalizer.to_local(instant)) == instant


def test_conversions_reject_wrong_kind_of_datetime():
    normalizer = TimeNormalizer(-3)
    with pytest.raises(ValueError):
        normalizer.to_local(datetime(2025, 10, 6, 13, 0))
    with pytest.raises(ValueError):
        normalizer.to_utc(datetime(2025, 10, 6, 10, 0, tzinfo=timezone.utc))


@pytest.mark.parametrize('value, expected', [
    (datetime(2025, 10, 6, 10, 25), datetime(2025, 10, 6, 10, 30)),
    (datetime(2025, 10, 6, 10, 30), datetime(2025, 10, 6, 10, 30)),
    (datetime(2025, 10, 6, 10, 55), datetime(2025, 10, 6, 11, 0)),
    (datetime(2025, 10, 6, 10, 30, 1), datetime(2025, 10, 6, 10, 40)),
    (datetime(2025, 10, 6, 23, 55), datetime(2025, 10, 7, 0, 0)),
])
def test_round_up_to_grid(value, expected):
    assert round_up_to_grid(value, 10) == expected


def test_round_up_to_grid_rejects_non_positive_grid():
    with pytest.raises(ValueError):
        round_up_to_grid(datetime(2025, 10, 6, 10, 25), 0)


def test_storage_helpers_strip_and_restore_utc():
    instant = datetime(2025, 10, 6, 13, 0, tzinfo=timezone.utc)
    stored = to_storage(instant)
    assert stored.tzinfo is None
    assert from_storage(stored) == instant


def test_fixed_clock_advance():
    clock = FixedClock(datetime(2025, 10, 6, 13, 0, tzinfo=timezone.utc))
    clock.advance(minutes=6)
    assert clock.now() == datetime(2025, 10, 6, 13, 6, tzinfo=timezone.utc)
