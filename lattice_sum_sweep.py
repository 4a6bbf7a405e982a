#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Lattice Prime Sum — Parameter Sweep & Self-Check (Multi-core)

What this does
--------------
Runs sum_primes_below(N; depth, threshold) for every combination of the
given bounds, partition depths and filter thresholds, and writes one CSV row
per run with the total, scan counters and timings.

Each run coalesces the lattice partition into a handful of contiguous work
units and scans them on a process pool (--jobs). Partial sums are reduced
in the parent; integer addition makes the total independent of worker count
and completion order.

When N = 10^12 with the calibrated configuration (depth 30, threshold 0.68,
filter width 36) the result is checked against the reference
189789638670523114592. Any other expectation can be passed with --expect.

Usage (examples)
----------------
# Single run with a known answer
python3 lattice_sum_sweep.py --N 1000 --threshold 0.0 --expect 76127

# Depth invariance sweep (multi-core)
python3 lattice_sum_sweep.py \
  --N 1e6 --depth 1 10 30 --threshold 0.68 --jobs 4 --out sweep.csv

# Reference run (long)
python3 lattice_sum_sweep.py --N 10**12 --jobs 16 --out reference.csv
"""

import argparse
import csv
import logging
import multiprocessing as mp
import sys
import time
from pathlib import Path

from lattice_kernel import (
    DEFAULT_DEPTH,
    DEFAULT_THRESHOLD,
    FILTER_DEPTH,
    REFERENCE_N,
    REFERENCE_SUM,
    SumReport,
    coalesce,
    partition,
    scan_interval,
    validate_args,
)

log = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

HEADER = ["status", "error", "N", "depth", "threshold", "filter_depth", "jobs",
          "total", "expected", "match", "intervals", "units", "candidates",
          "admitted", "primes", "t_total"]

# ------------------------
# Utilities
# ------------------------

def walltime():
    return time.perf_counter()

def parse_bound(text):
    """
    Integer bound from the command line: '1000', '1_000', '10**12', '1e12'.
    """
    s = str(text).strip().replace("_", "")
    try:
        if "**" in s:
            base, exp = s.split("**", 1)
            value = int(base) ** int(exp)
        elif "e" in s.lower():
            mant, exp = s.lower().split("e", 1)
            value = int(mant) * 10 ** int(exp)
        else:
            value = int(s)
    except ValueError:
        raise argparse.ArgumentTypeError("not an integer bound: %r" % text)
    if not isinstance(value, int):
        # negative exponents give fractions
        raise argparse.ArgumentTypeError("not an integer bound: %r" % text)
    if value < 0:
        raise argparse.ArgumentTypeError("bound must be >= 0: %r" % text)
    return value

def reference_for(N, depth, threshold, filter_depth):
    """Known total for the calibrated configuration, else None."""
    if (N == REFERENCE_N and depth == DEFAULT_DEPTH
            and threshold == DEFAULT_THRESHOLD and filter_depth == FILTER_DEPTH):
        return REFERENCE_SUM
    return None

# ------------------------
# Work distribution
# ------------------------

def _scan_unit(task):
    """Pool worker: partial sum and counters for one work unit."""
    interval, threshold, filter_depth = task
    stats = {}
    total = scan_interval(interval, threshold, filter_depth, stats)
    return total, stats

def parallel_sum_with_stats(N, depth=DEFAULT_DEPTH, threshold=DEFAULT_THRESHOLD,
                            jobs=1, batches=None, filter_depth=FILTER_DEPTH):
    """
    Same total as lattice_kernel.sum_primes_below, computed by reducing
    per-unit partial sums. jobs <= 1 scans the units in-process.
    Returns (SumReport, number of work units).
    """
    N = validate_args(N, depth, threshold, filter_depth)
    report = SumReport()
    if N < 2:
        return report, 0

    t0 = walltime()
    lattice = partition(N, depth)
    if batches is None:
        batches = 4 * max(1, jobs)
    units = coalesce(lattice, batches)
    tasks = [(unit, threshold, filter_depth) for unit in units]
    report.intervals = len(lattice)

    # 2 is the only even prime and no scan counts it
    total = 2 if N > 2 else 0
    primes = 1 if N > 2 else 0
    candidates = admitted = 0

    if jobs > 1 and len(tasks) > 1:
        with mp.get_context("spawn").Pool(processes=jobs) as pool:
            partials = list(pool.imap_unordered(_scan_unit, tasks, chunksize=1))
    else:
        partials = [_scan_unit(task) for task in tasks]

    for part, stats in partials:
        total += part
        candidates += stats.get("candidates", 0)
        admitted += stats.get("admitted", 0)
        primes += stats.get("primes", 0)

    report.total = total
    report.candidates = candidates
    report.admitted = admitted
    report.primes = primes
    report.elapsed = walltime() - t0
    log.info("N=%d: %d units over %d intervals on %d job(s) in %.2fs",
             N, len(units), report.intervals, max(1, jobs), report.elapsed)
    return report, len(units)

def parallel_sum_primes_below(N, depth=DEFAULT_DEPTH, threshold=DEFAULT_THRESHOLD,
                              jobs=1, batches=None, filter_depth=FILTER_DEPTH):
    report, _ = parallel_sum_with_stats(N, depth, threshold, jobs, batches, filter_depth)
    return report.total

# ------------------------
# Sweep orchestration
# ------------------------

def compute_sum_for_params(params):
    """
    Core single-run worker. Returns dict of results.
    """
    N            = params["N"]
    depth        = params["depth"]
    threshold    = params["threshold"]
    filter_depth = params.get("filter_depth", FILTER_DEPTH)
    jobs         = params.get("jobs", 1)
    batches      = params.get("batches")
    expected     = params.get("expected")
    if expected is None:
        expected = reference_for(N, depth, threshold, filter_depth)

    t0 = walltime()
    report, units = parallel_sum_with_stats(N, depth, threshold, jobs=jobs,
                                            batches=batches, filter_depth=filter_depth)
    t1 = walltime()

    return {
        "N": N, "depth": depth, "threshold": threshold,
        "filter_depth": filter_depth, "jobs": jobs,
        "total": report.total,
        "expected": "" if expected is None else expected,
        "match": "" if expected is None else report.total == expected,
        "intervals": report.intervals, "units": units,
        "candidates": report.candidates, "admitted": report.admitted,
        "primes": report.primes,
        "t_total": t1 - t0,
    }

def run_job(row):
    try:
        out = compute_sum_for_params(row)
        out["status"] = "ok"
    except Exception as e:
        log.error("run failed for N=%r depth=%r: %r", row.get("N"), row.get("depth"), e)
        out = dict(row)
        out.update({"status": "error", "error": repr(e)})
    return out

def param_grid(args):
    for N in args.N:
        for depth in args.depth:
            for threshold in args.threshold:
                yield dict(
                    N=int(N), depth=int(depth), threshold=float(threshold),
                    filter_depth=int(args.filter_depth), jobs=int(args.jobs),
                    batches=args.batches, expected=args.expect,
                )

# ------------------------
# CLI
# ------------------------

def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Lattice prime-sum sweep (multi-core).")
    p.add_argument("--N", type=parse_bound, nargs="+", default=[1000],
                   help="Bounds (sum of primes < N). Accepts 10**12 and 1e12.")
    p.add_argument("--depth", type=int, nargs="+", default=[DEFAULT_DEPTH],
                   help="Partition depths (2^depth intervals, capped at 36).")
    p.add_argument("--threshold", type=float, nargs="+", default=[DEFAULT_THRESHOLD],
                   help="Resonance filter thresholds in [0, 1].")
    p.add_argument("--filter_depth", type=int, default=FILTER_DEPTH,
                   help="Bit width the resonance score is computed over.")
    p.add_argument("--jobs", type=int, default=1, help="Parallel jobs.")
    p.add_argument("--batches", type=int, default=None,
                   help="Work units per run (default 4 * jobs).")
    p.add_argument("--expect", type=parse_bound, default=None,
                   help="Expected total for self-verification.")
    p.add_argument("--out", type=str, default="lattice_sum.csv", help="Output CSV.")
    p.add_argument("--log-level", type=str, default="WARNING",
                   choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return p.parse_args(argv)

def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)
    rows = list(param_grid(args))

    outpath = Path(args.out)
    outpath.parent.mkdir(parents=True, exist_ok=True)

    failures = 0
    t0 = walltime()
    with open(outpath, "w", newline="") as f:
        w = csv.DictWriter(f, fieldnames=HEADER, extrasaction="ignore")
        w.writeheader()
        for row in rows:
            res = run_job(row)
            w.writerow(res)
            if res["status"] != "ok":
                failures += 1
                print(f"N={row['N']} depth={row['depth']} threshold={row['threshold']}: {res['error']}")
                continue
            print(f"Sum of primes < {res['N']} = {res['total']}"
                  f"  (depth={res['depth']}, threshold={res['threshold']})")
            if res["expected"] != "":
                print(f"Match expected: {res['match']}")
                if not res["match"]:
                    failures += 1
    t1 = walltime()
    print(f"Done in {t1-t0:.2f}s → {outpath}")
    return 1 if failures else 0

if __name__ == "__main__":
    sys.exit(main())
