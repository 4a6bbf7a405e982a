"""
Tests for the resonance pre-filter.

These tests verify:
1. Hand-computed scores on short bit patterns
2. Rejection of n < 3 and of all-zero / all-one patterns
3. The vectorised block scorer is bit-identical to the scalar scorer
4. Every prime below 2^16 survives the calibrated configuration
"""

import math

import numpy as np
import pytest

from lattice_kernel import (
    DEFAULT_THRESHOLD,
    FILTER_DEPTH,
    _entropy_table,
    is_prime,
    passes_filter,
    resonance_score,
    resonance_scores,
)
from lattice_filter_audit import sieve_primes


def reference_score(n, depth):
    """Direct transcription of the score formula, using log2."""
    b = bin(n)[2:].zfill(depth)
    ones = b.count("1")
    p1 = min(max(ones / depth, 1e-12), 1 - 1e-12)
    h = -(p1 * math.log2(p1) + (1 - p1) * math.log2(1 - p1))
    pairs = sum(1 for i in range(0, depth - 1, 2) if b[i] == b[i + 1])
    return 0.5 * pairs / (depth / 2) + 0.5 / (1 + abs(h - 1))


@pytest.mark.parametrize("n", [0, 1, 2, -5])
def test_below_three_rejected(n):
    assert resonance_score(n) == 0.0


def test_all_ones_pattern_rejected():
    assert resonance_score(15, depth=4) == 0.0
    assert resonance_score(7, depth=3) == 0.0
    assert resonance_score(2**36 - 1) == 0.0


def test_four_bit_patterns():
    # balanced patterns: H = 1, so the entropy term is exactly 0.5
    assert resonance_score(5, depth=4) == pytest.approx(0.5)    # 01 01
    assert resonance_score(6, depth=4) == pytest.approx(0.5)    # 01 10
    assert resonance_score(9, depth=4) == pytest.approx(0.5)    # 10 01
    assert resonance_score(12, depth=4) == pytest.approx(1.0)   # 11 00
    assert resonance_score(3, depth=4) == pytest.approx(1.0)    # 00 11


def test_three_at_default_width():
    # 34 zeros then 11: every pair aligned
    assert resonance_score(3) == pytest.approx(reference_score(3, FILTER_DEPTH))
    assert resonance_score(3) == pytest.approx(0.5 + 0.5 / (1 + abs(reference_entropy(2, 36) - 1)))


def reference_entropy(ones, depth):
    p = ones / depth
    return -(p * math.log2(p) + (1 - p) * math.log2(1 - p))


def test_odd_depth_ignores_last_bit_in_pairs():
    # depth 5: pairs (0,1), (2,3); position 4 unpaired; align over 2.5 pairs
    n = 0b00101
    expected = 0.5 * (1 / 2.5) + 0.5 / (1 + abs(reference_entropy(2, 5) - 1))
    assert resonance_score(n, depth=5) == pytest.approx(expected)


def test_candidate_wider_than_depth_keeps_full_width():
    n = 2**40 + 1          # 41 characters; leading '1' pairs with a '0'
    expected = 0.5 * (17 / 18) + 0.5 / (1 + abs(reference_entropy(2, 36) - 1))
    assert resonance_score(n) == pytest.approx(expected)


@pytest.mark.parametrize("depth", [4, 8, 30, 36])
def test_matches_reference_formula(depth):
    for n in range(3, 5000, 7):
        b = bin(n)[2:].zfill(depth)
        ones = b.count("1")
        if ones in (0, depth):
            assert resonance_score(n, depth) == 0.0
        else:
            assert resonance_score(n, depth) == pytest.approx(reference_score(n, depth))


def test_scores_lie_in_unit_interval():
    s = resonance_scores(range(0, 20000), FILTER_DEPTH)
    assert s.min() >= 0.0
    assert s.max() <= 1.0


@pytest.mark.parametrize("depth", [1, 4, 8, 17, 30, 36, 40, 63])
def test_vectorised_matches_scalar(depth):
    cands = list(range(0, 9000, 3))
    got = resonance_scores(cands, depth)
    want = np.array([resonance_score(c, depth) for c in cands])
    assert np.array_equal(got, want)


def test_vectorised_matches_scalar_on_wide_candidates():
    for lo in (2**36 - 2001, 2**40 - 999, 10**12, 2**62 - 5000):
        cands = list(range(lo, lo + 4000, 2))
        got = resonance_scores(cands, FILTER_DEPTH)
        want = np.array([resonance_score(c, FILTER_DEPTH) for c in cands])
        assert np.array_equal(got, want)


def test_candidates_beyond_int64_fall_back_to_scalar():
    cands = list(range(2**63 + 1, 2**63 + 201, 2))
    got = resonance_scores(cands)
    assert np.array_equal(got, np.array([resonance_score(c) for c in cands]))


def test_empty_block():
    assert resonance_scores([]).size == 0


def test_invalid_depth():
    with pytest.raises(ValueError):
        resonance_score(5, depth=0)
    with pytest.raises(ValueError):
        resonance_scores(range(100), depth=0)


def test_calibrated_configuration_keeps_small_primes():
    primes = sieve_primes(2**16 - 1).tolist()
    assert all(passes_filter(p) for p in primes if p > 2)


def test_filter_is_strict_inequality():
    s = resonance_score(5, depth=4)
    assert not passes_filter(5, threshold=s, depth=4)
    assert passes_filter(5, threshold=s - 1e-9, depth=4)


def test_default_threshold_rejects_split_pair_patterns():
    # 18-bit patterns with every pair split score below 0.68
    n = int("01" * 9, 2)
    assert resonance_score(n) < DEFAULT_THRESHOLD


def test_default_threshold_rejects_prime_87641():
    # smallest prime the calibrated filter drops
    assert is_prime(87641)
    assert not passes_filter(87641)
    assert resonance_scores([87641] * 64)[0] == resonance_score(87641)


def test_entropy_table_built_once_per_width():
    table = _entropy_table(36)
    assert _entropy_table(36) is table
    assert not table.flags.writeable
    assert table[18] == pytest.approx(0.5)
    assert _entropy_table(30) is not table
