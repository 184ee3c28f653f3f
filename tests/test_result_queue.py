import pytest

from pileupstats.errors import EmptyQueueError
from pileupstats.models import Observation, PileupPosition
from pileupstats.result_queue import PileupResultQueue
from pileupstats.stats import compute_position_statistics


def make_stat(ref: int, pos0: int):
    o = Observation(base="A", quality=30, mapping_quality=60, offset=0, read_length=10)
    return compute_position_statistics(PileupPosition(reference_id=ref, position=pos0, observations=(o,)))


def test_fifo_order() -> None:
    q = PileupResultQueue()
    for p in (1, 2, 3):
        assert q.push(make_stat(0, p))
    assert len(q) == 3
    assert [q.pop().pos0 for _ in range(3)] == [1, 2, 3]
    assert not q


def test_pop_empty_raises() -> None:
    q = PileupResultQueue()
    with pytest.raises(EmptyQueueError):
        q.pop()
    assert q.peek() is None


def test_watermark_is_one_shot() -> None:
    q = PileupResultQueue()
    q.arm(0, 10)
    assert not q.push(make_stat(0, 5))
    assert not q.push(make_stat(0, 9))
    assert q.armed
    assert q.push(make_stat(0, 10))
    assert not q.armed
    # once disarmed, nothing is suppressed
    assert q.push(make_stat(0, 3))
    assert [s.pos0 for s in (q.pop(), q.pop())] == [10, 3]


def test_watermark_lets_later_reference_through() -> None:
    q = PileupResultQueue()
    q.arm(0, 100)
    assert q.push(make_stat(1, 2))
    assert not q.armed


def test_clear_keeps_watermark() -> None:
    q = PileupResultQueue()
    q.push(make_stat(0, 1))
    q.arm(0, 50)
    q.clear()
    assert len(q) == 0
    assert q.watermark == (0, 50)
    q.disarm()
    assert q.watermark is None


def test_discard_before_and_front_check() -> None:
    q = PileupResultQueue()
    for p in (3, 4, 8):
        q.push(make_stat(0, p))
    q.push(make_stat(1, 0))

    assert not q.front_is_at_or_past(0, 8)
    assert q.discard_before(0, 8) == 2
    assert q.front_is_at_or_past(0, 8)
    assert q.pop().pos0 == 8

    # front is on another reference: already past the target
    assert q.front_is_at_or_past(0, 1000)
    assert q.discard_before(0, 1000) == 0


def test_front_check_empty_queue() -> None:
    assert not PileupResultQueue().front_is_at_or_past(0, 0)


def test_suppresses_matches_push_without_disarming() -> None:
    q = PileupResultQueue()
    assert not q.suppresses(0, 0)
    q.arm(0, 10)
    assert q.suppresses(0, 9)
    assert not q.suppresses(0, 10)
    assert not q.suppresses(1, 0)
    assert q.armed
