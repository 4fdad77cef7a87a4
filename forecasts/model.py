"""
Work items, estimates and projects as loaded from YAML.

Estimates are one of three kinds:
  - StoryPointEstimate: relative size, turned into time through team velocity
  - ThreePointEstimate: optimistic / most likely / pessimistic duration in days
  - ReferenceEstimate: borrows p0/p50/p100 of another simulation report,
    resolved once at load time into a cached ThreePointEstimate
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

import pandas as pd

from forecasts.errors import InvalidDateError, InvalidStatusError

DATE_FORMAT = "%Y-%m-%d"


# ── Dates ────────────────────────────────────────────────────────────────────

def parse_date(val, context=""):
    """Parse a YAML date value (date scalar, datetime or YYYY-MM-DD string) into a date."""
    if val is None or (not isinstance(val, str) and pd.isna(val)):
        raise InvalidDateError("", context)
    if isinstance(val, pd.Timestamp):
        return val.date()
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    if isinstance(val, str):
        text = val.strip()
        try:
            return datetime.strptime(text, DATE_FORMAT).date()
        except ValueError:
            raise InvalidDateError(val, context) from None
    raise InvalidDateError(val, context)


def parse_date_opt(val, context=""):
    if val is None:
        return None
    return parse_date(val, context)


def format_date(d):
    return d.strftime(DATE_FORMAT)


# ── Status ───────────────────────────────────────────────────────────────────

class IssueStatus(Enum):
    TODO = "ToDo"
    IN_PROGRESS = "InProgress"
    DONE = "Done"

    @classmethod
    def parse(cls, value):
        """Case-insensitive status parsing; None stays None."""
        if value is None:
            return None
        key = str(value).strip().lower()
        if key in ("todo", "to do"):
            return cls.TODO
        if key in ("inprogress", "in progress"):
            return cls.IN_PROGRESS
        if key == "done":
            return cls.DONE
        raise InvalidStatusError(value)


# ── Estimates ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class StoryPointEstimate:
    value: float


@dataclass(frozen=True)
class ThreePointEstimate:
    optimistic: float
    most_likely: float
    pessimistic: float

    def as_triplet(self):
        return self.optimistic, self.most_likely, self.pessimistic


@dataclass(frozen=True)
class ReferenceEstimate:
    report_file_path: str
    cached: Optional[ThreePointEstimate] = None


# ── Work items ───────────────────────────────────────────────────────────────

@dataclass
class WorkItem:
    """One work package. `dependencies` is None when the item declares none."""
    id: str
    summary: Optional[str] = None
    description: Optional[str] = None
    estimate: object = None
    dependencies: Optional[List[str]] = None
    status: Optional[IssueStatus] = None
    created_date: Optional[date] = None
    start_date: Optional[date] = None
    done_date: Optional[date] = None
    subgraph: Optional[str] = None

    @property
    def label(self):
        return self.summary or self.id

    def story_point_value(self):
        if isinstance(self.estimate, StoryPointEstimate):
            return self.estimate.value
        return None

    def dependency_ids(self):
        return list(self.dependencies or [])


@dataclass
class Project:
    name: str
    work_packages: List[WorkItem] = field(default_factory=list)


@dataclass(frozen=True)
class Throughput:
    """Number of issues completed on one historical day."""
    date: date
    completed_issues: int
