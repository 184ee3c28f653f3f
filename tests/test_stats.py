import math

import pytest

from pileupstats.errors import MalformedBaseError
from pileupstats.models import Observation, PileupPosition
from pileupstats.stats import compute_position_statistics, position_signal


def obs(base, q=30, mq=60, off=0, length=10, rev=False, deletion=False):
    return Observation(
        base=base,
        quality=q,
        mapping_quality=mq,
        offset=off,
        read_length=length,
        is_reverse=rev,
        is_deletion=deletion,
    )


def pileup(*observations, ref=0, pos0=99):
    return PileupPosition(reference_id=ref, position=pos0, observations=tuple(observations))


def test_mixed_position():
    stat = compute_position_statistics(
        pileup(
            obs("A", q=30, mq=60, off=0),
            obs("A", q=20, mq=50, off=9, rev=True),
            obs("T", q=10, mq=40, off=5),
        )
    )
    assert stat.position == 100
    assert stat.a.count == 2
    assert stat.t.count == 1
    assert stat.c.count == 0 and stat.g.count == 0
    assert stat.total.count == 3
    assert stat.major_base_index == 0
    assert stat.minor_base_index == 3
    expected = -(2 / 3 * math.log(2 / 3) + 1 / 3 * math.log(1 / 3))
    assert stat.entropy == pytest.approx(expected)
    assert stat.entropy == pytest.approx(0.6365, abs=1e-4)


def test_channel_sums():
    stat = compute_position_statistics(
        pileup(
            obs("A", q=30, mq=60, off=0),
            obs("A", q=20, mq=50, off=9, rev=True),
            obs("T", q=10, mq=40, off=5),
        )
    )
    assert stat.a.quality_sum == 50
    assert stat.a.map_quality_sum == 110
    # forward offset 0 -> 0; reverse offset 9 of 10 -> distance 0 plus strand 1
    assert stat.a.position_signal == 1
    assert stat.t.position_signal == 5
    assert stat.total.quality_sum == 60
    assert stat.total.map_quality_sum == 150
    assert stat.total.position_signal == 6
    assert stat.a.reserved_1 == 0 and stat.total.reserved_2 == 0


def test_position_signal_combines_distance_and_strand():
    assert position_signal(3, 10, False) == 3
    assert position_signal(3, 10, True) == 10 - 3 - 1 + 1


def test_only_ambiguous_base():
    stat = compute_position_statistics(pileup(obs("N")))
    assert stat.ambiguous_count == 1
    assert all(ch.count == 0 for ch in stat.channels)
    assert stat.entropy == 0.0
    assert stat.major_base_index == 0
    assert stat.minor_base_index == 1


def test_deletions_excluded_but_count_towards_depth():
    stat = compute_position_statistics(
        pileup(obs("C"), obs("C"), obs("*", deletion=True), obs("n"))
    )
    assert stat.c.count == 2
    assert stat.total.count == 2
    assert stat.ambiguous_count == 1
    # depth is 4, so p(C) = 0.5
    assert stat.entropy == pytest.approx(-0.5 * math.log(0.5))


def test_lowercase_bases_are_counted():
    stat = compute_position_statistics(pileup(obs("g"), obs("G")))
    assert stat.g.count == 2
    assert stat.major_base == "G"


def test_total_is_sum_of_bases():
    bases = "AACGTTTGNCA"
    stat = compute_position_statistics(pileup(*[obs(b) for b in bases]))
    assert stat.total.count == stat.a.count + stat.c.count + stat.g.count + stat.t.count
    assert stat.total.count == len(bases.replace("N", ""))


def test_entropy_maximal_for_equal_counts():
    stat = compute_position_statistics(pileup(*[obs(b) for b in "ACGTACGT"]))
    assert stat.entropy == pytest.approx(math.log(4))


def test_entropy_zero_for_single_base():
    stat = compute_position_statistics(pileup(*[obs("T") for _ in range(5)]))
    assert stat.entropy == 0.0
    assert stat.major_base == "T"
    assert stat.minor_base_index != stat.major_base_index


def test_ties_keep_first_base():
    stat = compute_position_statistics(pileup(obs("G"), obs("C"), obs("G"), obs("C")))
    assert stat.major_base == "C"
    assert stat.minor_base == "G"


def test_minor_is_never_major():
    stat = compute_position_statistics(pileup(*[obs("A") for _ in range(3)], obs("G"), obs("G")))
    assert stat.major_base == "A"
    assert stat.minor_base == "G"
    for ch in stat.channels[:4]:
        assert stat.channels[stat.major_base_index].count >= ch.count


def test_malformed_base_raises():
    with pytest.raises(MalformedBaseError) as excinfo:
        compute_position_statistics(pileup(obs("A"), obs("R"), pos0=4))
    assert excinfo.value.base == "R"
    assert excinfo.value.position == 5


def test_as_tuple_layout():
    stat = compute_position_statistics(pileup(obs("A"), ref=2, pos0=0))
    tpl = stat.as_tuple()
    assert len(tpl) == 13
    assert tpl[0] == 2 and tpl[1] == 1
    assert tpl[2] == (1, 30, 60, 0, 0, 0)
    assert tpl[6] == (1, 30, 60, 0, 0, 0)
    assert tpl[10] == 0 and tpl[12] == 0
