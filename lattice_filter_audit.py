#!/usr/bin/env python3
# -*- coding: utf-8 -*-


"""
Lattice Prime Sum — Resonance Filter Audit

Goal
----
Measure how much of the true prime sum the resonance pre-filter keeps.
The filter is calibrated for one configuration; outside it primes can be
dropped silently. This audit makes the loss visible.

Strategy
--------
Sieve the primes below a bound with numpy (ground truth), score every odd
prime with the resonance filter and compare, per (threshold, filter width):
  exact_sum     : sum of all primes < bound
  filtered_sum  : 2 + sum of odd primes whose score > threshold
                  (what sum_primes_below returns for the same arguments)
  retention     : primes_kept / primes_total
  dropped_sum   : exact_sum - filtered_sum
  first_dropped : smallest prime the filter rejects

Usage (examples)
----------------
python3 lattice_filter_audit.py --bound 1000000 \
  --threshold 0.0 0.6 0.68 0.7 0.75 --filter_depth 30 36 \
  --out audit.csv --plot
"""

import argparse
import csv
import logging
from pathlib import Path

import numpy as np

from lattice_kernel import BLOCK, DEFAULT_THRESHOLD, FILTER_DEPTH, resonance_scores

log = logging.getLogger(__name__)

# ---------- utilities ----------

def sieve_primes(n):
    """Sieve of Eratosthenes up to n (inclusive)."""
    if n < 2:
        return np.array([], dtype=np.int64)
    s = np.ones(n + 1, dtype=bool); s[:2] = False
    for p in range(2, int(n**0.5) + 1):
        if s[p]: s[p*p:n+1:p] = False
    return np.nonzero(s)[0].astype(np.int64)

def score_primes(primes, filter_depth):
    """Resonance scores of the odd primes, in blocks."""
    odd = [int(p) for p in primes if p > 2]
    out = np.zeros(len(odd), dtype=float)
    for i in range(0, len(odd), BLOCK):
        j = min(i + BLOCK, len(odd))
        out[i:j] = resonance_scores(odd[i:j], filter_depth)
    return odd, out

def audit_threshold(primes, bound, threshold=DEFAULT_THRESHOLD, filter_depth=FILTER_DEPTH,
                    scored=None):
    """
    Compare the filtered sum with the exact sum of `primes` (all primes < bound).
    `scored` may carry precomputed (odd_primes, scores) for this filter width.
    """
    if scored is None:
        scored = score_primes(primes, filter_depth)
    odd, scores = scored
    keep = scores > threshold

    exact = sum(int(p) for p in primes)
    has_two = bound > 2
    filtered = (2 if has_two else 0) + sum(p for p, k in zip(odd, keep) if k)
    kept = int(keep.sum()) + (1 if has_two else 0)
    dropped = np.nonzero(~keep)[0]
    total = int(len(primes))
    return dict(
        bound=bound, threshold=threshold, filter_depth=filter_depth,
        exact_sum=exact, filtered_sum=filtered,
        primes_total=total, primes_kept=kept,
        retention=(kept / total) if total else 1.0,
        dropped_sum=exact - filtered,
        first_dropped=(odd[int(dropped[0])] if dropped.size else ""),
    )

def plot_retention(rows, path):
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    plt.figure()
    for fd in sorted({r["filter_depth"] for r in rows}):
        sub = sorted((r for r in rows if r["filter_depth"] == fd), key=lambda r: r["threshold"])
        plt.plot([r["threshold"] for r in sub], [r["retention"] for r in sub],
                 marker="o", label=f"filter width {fd}")
    plt.axvline(DEFAULT_THRESHOLD, linestyle="--", color="gray")
    plt.xlabel("threshold")
    plt.ylabel("prime retention")
    plt.title(f"Resonance filter retention, primes < {rows[0]['bound']}")
    plt.legend()
    plt.tight_layout()
    plt.savefig(path, dpi=160)
    plt.close()

def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Resonance filter retention audit.")
    ap.add_argument("--bound", type=int, default=100000)
    ap.add_argument("--threshold", type=float, nargs="+",
                    default=[0.0, 0.6, 0.65, DEFAULT_THRESHOLD, 0.7, 0.75])
    ap.add_argument("--filter_depth", type=int, nargs="+", default=[FILTER_DEPTH])
    ap.add_argument("--out", type=str, default="filter_audit.csv")
    ap.add_argument("--plot", action="store_true", help="write a retention-vs-threshold PNG")
    ap.add_argument("--log-level", type=str, default="WARNING",
                    choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return ap.parse_args(argv)

def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format="%(asctime)s - %(levelname)s - %(message)s")
    if args.bound < 0:
        raise SystemExit("bound must be >= 0")
    primes = sieve_primes(args.bound - 1)
    rows = []
    for fd in args.filter_depth:
        scored = score_primes(primes, fd)
        log.info("scored %d odd primes at filter width %d", len(scored[0]), fd)
        for t in args.threshold:
            rows.append(audit_threshold(primes, args.bound, t, fd, scored=scored))

    header = ["bound","threshold","filter_depth","exact_sum","filtered_sum",
              "primes_total","primes_kept","retention","dropped_sum","first_dropped"]
    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w", newline="") as f:
        w = csv.DictWriter(f, fieldnames=header); w.writeheader()
        for r in rows: w.writerow(r)

    for r in rows:
        print(f"w={r['filter_depth']:<3} t={r['threshold']:<5} kept {r['primes_kept']}/{r['primes_total']}"
              f" ({r['retention']:.4%})  filtered={r['filtered_sum']}  dropped={r['dropped_sum']}")
    if args.plot and rows:
        png = out.with_suffix(".png")
        plot_retention(rows, png)
        print(f"Saved {png}")
    print(f"Wrote {out} with {len(rows)} rows.")

if __name__=="__main__":
    main()
