"""
Tests for the lattice range partition.

These tests verify:
1. Exact, gap-free, overlap-free coverage of [0, N)
2. Depth clamping and the 2^depth interval bound
3. Lazy behaviour at the maximum fan-out (depth 36)
4. Coalescing into work units preserves coverage
"""

import pytest

from lattice_kernel import (
    MAX_PARTITION_DEPTH,
    Interval,
    Partition,
    coalesce,
    partition,
)


def assert_covers(intervals, N):
    intervals = list(intervals)
    assert intervals[0].start == 0
    assert intervals[-1].end == N
    for a, b in zip(intervals, intervals[1:]):
        assert a.end == b.start
    for iv in intervals:
        assert iv.start <= iv.end
    assert sum(iv.width for iv in intervals) == N


@pytest.mark.parametrize("N", [0, 1, 2, 3, 10, 17, 1000, 4099, 65536, 10**6 + 3])
@pytest.mark.parametrize("depth", [0, 1, 2, 3, 5, 10, 20])
def test_union_is_exactly_the_range(N, depth):
    p = partition(N, depth)
    assert len(p) <= 2**depth
    assert_covers(p, N)


def test_depth_zero_is_single_interval():
    assert list(partition(12345, 0)) == [Interval(0, 12345)]


def test_zero_bound():
    assert list(partition(0, 10)) == [Interval(0, 0)]


def test_tail_is_absorbed_by_last_interval():
    assert list(partition(10, 2)) == [
        Interval(0, 2), Interval(2, 4), Interval(4, 6), Interval(6, 10),
    ]


def test_small_bound_uses_unit_intervals():
    assert list(partition(3, 3)) == [Interval(0, 1), Interval(1, 2), Interval(2, 3)]


def test_depth_clamped_to_maximum():
    p = partition(10, 40)
    assert p.depth == MAX_PARTITION_DEPTH
    assert_covers(p, 10)


def test_maximum_fan_out_is_lazy():
    N = 2**36 + 5
    p = partition(N, 36)
    assert isinstance(p, Partition)
    assert len(p) == 2**36
    assert p[0] == Interval(0, 1)
    assert p[12345].end == p[12346].start
    assert p[-1] == Interval(2**36 - 1, N)
    assert p[-2] == Interval(2**36 - 2, 2**36 - 1)


def test_maximum_fan_out_small_bound():
    p = partition(1000, 36)
    assert len(p) == 1000
    assert_covers(p, 1000)


def test_large_bound_equal_steps():
    N = 10**12
    p = partition(N, 30)
    assert len(p) == 2**30
    assert p.step == N // 2**30
    assert p[-1].end == N
    assert p[1].start - p[0].start == p.step


def test_indexing_and_slicing():
    p = partition(100, 2)
    assert p[1:3] == [Interval(25, 50), Interval(50, 75)]
    assert p[::-1][0] == Interval(75, 100)
    with pytest.raises(IndexError):
        p[4]
    with pytest.raises(IndexError):
        p[-5]


def test_deterministic():
    assert list(partition(99991, 7)) == list(partition(99991, 7))


def test_interval_contains():
    iv = Interval(2, 5)
    assert iv.contains(2) and iv.contains(4)
    assert not iv.contains(5)
    assert not Interval(3, 3).contains(3)


@pytest.mark.parametrize("N,depth", [(-1, 3), (10, -1)])
def test_invalid_arguments(N, depth):
    with pytest.raises(ValueError):
        partition(N, depth)


@pytest.mark.parametrize("N", [1.5, "10", True, None])
def test_non_integer_bound(N):
    with pytest.raises(TypeError):
        partition(N, 3)


@pytest.mark.parametrize("batches", [1, 2, 3, 7, 64, 5000])
def test_coalesce_preserves_coverage(batches):
    N = 123457
    units = coalesce(partition(N, 10), batches)
    assert 1 <= len(units) <= batches
    assert_covers(units, N)


def test_coalesce_maximum_fan_out():
    N = 2**36 + 5
    units = coalesce(partition(N, 36), 16)
    assert len(units) == 16
    assert_covers(units, N)


def test_coalesce_rejects_zero_batches():
    with pytest.raises(ValueError):
        coalesce(partition(100, 2), 0)
