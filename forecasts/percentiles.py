"""Nearest-rank percentiles on sorted samples, and day offsets to calendar dates."""

import math
from datetime import timedelta

import numpy as np

REPORT_PERCENTILES = (0, 50, 85, 100)


def percentile(sorted_values, p):
    """Value at the rounded rank (p/100)*(n-1) of an ascending sequence.

    p <= 0 gives the minimum, p >= 100 the maximum, an empty input gives 0.0.
    """
    n = len(sorted_values)
    if n == 0:
        return 0.0
    if p <= 0:
        index = 0
    elif p >= 100:
        index = n - 1
    else:
        # round half away from zero, not Python's banker's rounding
        index = int(math.floor((p / 100.0) * (n - 1) + 0.5))
    return float(sorted_values[index])


def percentiles_from_values(values, levels=REPORT_PERCENTILES):
    """Sort `values` and return {level: percentile} for each level."""
    ordered = np.sort(np.asarray(values, dtype=float))
    return {level: percentile(ordered, level) for level in levels}


def end_date_from_days(start_date, days):
    """Calendar date reached `days` elapsed days after start_date (rounded up)."""
    return start_date + timedelta(days=max(0, math.ceil(days)))
