"""
Throughput-replay forecast: how many workdays until N issues are done?

Every trial walks workdays from the start date, drawing one historical daily
completion count per day (uniformly, with replacement) and scaling it by the
team capacity of that date, until the requested number of issues is reached.
"""

import math
from datetime import date, timedelta
from pathlib import Path

import numpy as np
import pandas as pd

from forecasts.calendar import MAX_CALENDAR_DAYS, CachedCalendar, TeamCalendar
from forecasts.errors import (
    EmptyThroughputError,
    InvalidIssueCountError,
    InvalidIterationsError,
    NoTeamCapacityError,
    ZeroThroughputError,
)
from forecasts.model import parse_date
from forecasts.reports import SimulationOutput, build_report


# ── Workdays ─────────────────────────────────────────────────────────────────

def next_workday(d):
    """d itself if it is Monday-Friday, else the following Monday."""
    while d.weekday() >= 5:
        d += timedelta(days=1)
    return d


def workday_end_date(start_date, days):
    """Date of workday number ceil(days); day 1 is the first workday on/after start."""
    d = next_workday(start_date)
    for _ in range(1, max(0, math.ceil(days))):
        d = next_workday(d + timedelta(days=1))
    return d


def throughput_frame(throughput):
    """History as a DataFrame (date, completed_issues), ordered by date."""
    frame = pd.DataFrame(
        [{"date": t.date, "completed_issues": int(t.completed_issues)} for t in throughput],
        columns=["date", "completed_issues"],
    )
    return frame.sort_values("date", kind="mergesort").reset_index(drop=True)


# ── Simulation ───────────────────────────────────────────────────────────────

def _single_run(values, number_of_issues, start_date, calendar, rng):
    completed = 0.0
    days = 0
    idle = 0
    d = next_workday(start_date)
    while True:
        days += 1
        capacity = max(0.0, calendar.get_capacity(d))
        if capacity > 0:
            idle = 0
        else:
            idle += 1
            if idle > MAX_CALENDAR_DAYS:
                raise NoTeamCapacityError(start_date, d)
        sampled = values[rng.integers(len(values))]
        completed += sampled * capacity
        if completed >= number_of_issues:
            return days
        d = next_workday(d + timedelta(days=1))


def run_throughput_simulation(throughput, iterations, number_of_issues, start_date,
                              calendar=None, rng=None, seed=None):
    """Monte Carlo over historical throughput; returns a SimulationOutput.

    Results are workday counts; report dates are mapped through workdays.
    """
    if iterations <= 0:
        raise InvalidIterationsError()
    if number_of_issues <= 0:
        raise InvalidIssueCountError()
    if not throughput:
        raise EmptyThroughputError()

    values = throughput_frame(throughput)["completed_issues"].to_numpy()
    if not values.any():
        raise ZeroThroughputError()

    if not isinstance(start_date, date):
        start_date = parse_date(start_date, context="start date")
    calendar = CachedCalendar(calendar if calendar is not None else TeamCalendar())
    rng = rng if rng is not None else np.random.default_rng(seed)

    results = sorted(
        float(_single_run(values, number_of_issues, start_date, calendar, rng))
        for _ in range(iterations)
    )
    report = build_report(results, start_date, iterations, number_of_issues,
                          to_date=workday_end_date)
    return SimulationOutput(report=report, results=results)


def simulate_from_throughput_file(path, iterations, number_of_issues, start_date,
                                  calendar_dir=None, seed=None):
    """Load a throughput YAML file (and optional calendar directory) and simulate."""
    from forecasts.yaml_io import load_team_calendar_dir, load_throughput

    throughput = load_throughput(path)
    start = parse_date(start_date, context="start date")
    calendar = load_team_calendar_dir(calendar_dir) if calendar_dir else TeamCalendar()
    output = run_throughput_simulation(throughput, iterations, number_of_issues, start,
                                       calendar=calendar, seed=seed)
    output.report = output.report.with_data_source(Path(path).name)
    return output
