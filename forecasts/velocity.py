"""
Team velocity calibration.

Velocity is story points completed per day of team capacity, measured over
the most recently finished story-point items. Weighting by capacity means a
holiday or a part-time calendar in the history does not drag velocity down,
and the same calendar stretches the forecast later on.
"""

import pandas as pd

from forecasts.calendar import TeamCalendar, summed_capacity
from forecasts.errors import (
    InvalidVelocityDurationError,
    InvalidVelocityValueError,
    MissingVelocityDataError,
)
from forecasts.model import IssueStatus

VELOCITY_WINDOW = 30


def completed_story_points(project):
    """DataFrame of Done items that have story points and both start/done dates."""
    rows = []
    for item in project.work_packages:
        points = item.story_point_value()
        if item.status != IssueStatus.DONE or points is None:
            continue
        if item.start_date is None or item.done_date is None:
            continue
        rows.append({
            "id": item.id,
            "points": float(points),
            "start_date": item.start_date,
            "done_date": item.done_date,
        })
    return pd.DataFrame(rows, columns=["id", "points", "start_date", "done_date"])


def calculate_velocity(project, calendar=None, window=VELOCITY_WINDOW):
    """Story points per capacity-day over the last `window` completed items."""
    calendar = calendar if calendar is not None else TeamCalendar()
    done = completed_story_points(project)
    if done.empty:
        raise MissingVelocityDataError()

    selected = done.sort_values("done_date", kind="mergesort").tail(window)
    start = selected["start_date"].min()
    end = selected["done_date"].max()

    capacity = summed_capacity(calendar, start, end)
    if capacity <= 0:
        raise InvalidVelocityDurationError(start, end)

    velocity = float(selected["points"].sum()) / capacity
    if velocity <= 0:
        raise InvalidVelocityValueError(velocity)
    return velocity
