"""
YAML files: projects, simulation reports, team calendars and throughput history.

Loaders raise ForecastError subclasses for content problems and let OSError
from missing or unreadable files propagate to the caller.
"""

import os
from pathlib import Path

import yaml

from forecasts.calendar import Calendar, FreeDateRange, TeamCalendar, parse_weekday
from forecasts.errors import (
    CalendarDirectoryEmptyError,
    CalendarDirectoryNotFoundError,
    ForecastError,
    InvalidDateRangeError,
    InvalidWeekdayError,
    MissingIssueIdError,
    MissingPreviousDependencyError,
    YamlParseError,
)
from forecasts.model import (
    Project,
    ReferenceEstimate,
    StoryPointEstimate,
    ThreePointEstimate,
    Throughput,
    WorkItem,
    IssueStatus,
    format_date,
    parse_date,
    parse_date_opt,
)
from forecasts.reports import SimulationReport

YAML_SUFFIXES = (".yaml", ".yml")


class _Loader(yaml.SafeLoader):
    """SafeLoader that leaves timestamps as strings so dates are validated in one place."""


_Loader.add_constructor(
    "tag:yaml.org,2002:timestamp",
    lambda loader, node: loader.construct_scalar(node),
)


def _parse_yaml(text, source):
    try:
        return yaml.load(text, Loader=_Loader)
    except yaml.YAMLError as e:
        raise YamlParseError(source, e) from None


def _write_text(path, text):
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)


def _dump(data):
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)


def _number(value):
    """Whole floats are written as ints so '3' round-trips as 'value: 3'."""
    value = float(value)
    return int(value) if value.is_integer() else value


def _float_field(record, key, source, context):
    try:
        return float(record[key])
    except KeyError:
        raise YamlParseError(source, f"{context}: missing '{key}'") from None
    except (TypeError, ValueError):
        raise YamlParseError(source, f"{context}: '{key}' is not a number: {record[key]!r}") from None


# ── Simulation reports ───────────────────────────────────────────────────────

def parse_report(text, source="<string>"):
    record = _parse_yaml(text, source)
    if not isinstance(record, dict):
        raise YamlParseError(source, "expected a mapping of report fields")
    try:
        return SimulationReport.from_dict(record)
    except ForecastError:
        raise
    except (KeyError, TypeError, ValueError) as e:
        raise YamlParseError(source, f"invalid report field {e}") from None


def load_report(path):
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    return parse_report(text, source=path)


def dump_report(report):
    return _dump(report.to_dict())


def save_report(report, path):
    _write_text(path, dump_report(report))


# ── Projects ─────────────────────────────────────────────────────────────────

def _resolve_reference(report_path, base_dir, issue):
    """Three-point estimate (p0, p50, p100) of a referenced report, or None."""
    path = Path(report_path)
    if base_dir is not None and not path.is_absolute():
        path = Path(base_dir) / path
    try:
        report = load_report(path)
    except (OSError, ForecastError) as e:
        print(f"  WARNING: Could not read report for reference estimate of {issue}: {e}")
        return None
    return ThreePointEstimate(report.p0.days, report.p50.days, report.p100.days)


def _parse_estimate(record, issue, base_dir, source):
    if record is None:
        return None
    if not isinstance(record, dict):
        raise YamlParseError(source, f"estimate of {issue} must be a mapping")
    kind = str(record.get("type", "")).strip().lower()
    context = f"estimate of {issue}"
    if kind == "story_points":
        return StoryPointEstimate(_float_field(record, "value", source, context))
    if kind == "three_point":
        return ThreePointEstimate(
            _float_field(record, "optimistic", source, context),
            _float_field(record, "most_likely", source, context),
            _float_field(record, "pessimistic", source, context),
        )
    if kind == "reference":
        report_path = record.get("report_file_path")
        if not report_path:
            raise YamlParseError(source, f"{context}: missing 'report_file_path'")
        report_path = str(report_path)
        return ReferenceEstimate(report_path, _resolve_reference(report_path, base_dir, issue))
    raise YamlParseError(source, f"{context}: unknown type {record.get('type')!r}")


def _optional_str(value):
    return None if value is None else str(value)


def parse_project(text, base_dir=None, source="<string>"):
    """Build a Project from YAML text.

    `dependencies: []` means "depends on the previous item"; an omitted key
    means no dependencies. Reference report paths are resolved against
    `base_dir` when relative.
    """
    record = _parse_yaml(text, source)
    if not isinstance(record, dict) or "work_packages" not in record:
        raise YamlParseError(source, "expected a mapping with 'name' and 'work_packages'")
    packages = record.get("work_packages") or []
    if not isinstance(packages, list):
        raise YamlParseError(source, "'work_packages' must be a list")

    items = []
    previous_id = None
    for entry in packages:
        if not isinstance(entry, dict):
            raise YamlParseError(source, f"work package must be a mapping, got {entry!r}")
        raw_id = entry.get("id")
        if raw_id is None or not str(raw_id).strip():
            raise MissingIssueIdError()
        item_id = str(raw_id)

        deps = entry.get("dependencies")
        if deps is not None:
            if not isinstance(deps, list):
                raise YamlParseError(source, f"dependencies of {item_id} must be a list")
            if not deps:
                if previous_id is None:
                    raise MissingPreviousDependencyError(item_id)
                deps = [previous_id]
            else:
                deps = [str(d) for d in deps]

        items.append(WorkItem(
            id=item_id,
            summary=_optional_str(entry.get("summary")),
            description=_optional_str(entry.get("description")),
            estimate=_parse_estimate(entry.get("estimate"), item_id, base_dir, source),
            dependencies=deps,
            status=IssueStatus.parse(entry.get("status")),
            created_date=parse_date_opt(entry.get("created_date"), f"{item_id} created_date"),
            start_date=parse_date_opt(entry.get("start_date"), f"{item_id} start_date"),
            done_date=parse_date_opt(entry.get("done_date"), f"{item_id} done_date"),
            subgraph=_optional_str(entry.get("subgraph")),
        ))
        previous_id = item_id

    return Project(name=str(record.get("name") or ""), work_packages=items)


def load_project(path):
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    return parse_project(text, base_dir=os.path.dirname(os.path.abspath(path)), source=path)


def _estimate_record(estimate):
    if isinstance(estimate, StoryPointEstimate):
        return {"type": "story_points", "value": _number(estimate.value)}
    if isinstance(estimate, ThreePointEstimate):
        return {
            "type": "three_point",
            "optimistic": _number(estimate.optimistic),
            "most_likely": _number(estimate.most_likely),
            "pessimistic": _number(estimate.pessimistic),
        }
    if isinstance(estimate, ReferenceEstimate):
        return {"type": "reference", "report_file_path": estimate.report_file_path}
    return None


def dump_project(project):
    packages = []
    for item in project.work_packages:
        record = {"id": item.id}
        if item.summary is not None:
            record["summary"] = item.summary
        if item.description is not None:
            record["description"] = item.description
        estimate = _estimate_record(item.estimate)
        if estimate is not None:
            record["estimate"] = estimate
        if item.status is not None:
            record["status"] = item.status.value
        for key in ("created_date", "start_date", "done_date"):
            value = getattr(item, key)
            if value is not None:
                record[key] = format_date(value)
        if item.dependencies is not None:
            record["dependencies"] = list(item.dependencies)
        if item.subgraph is not None:
            record["subgraph"] = item.subgraph
        packages.append(record)
    return _dump({"name": project.name, "work_packages": packages})


def save_project(project, path):
    _write_text(path, dump_project(project))


# ── Team calendars ───────────────────────────────────────────────────────────

def parse_calendar(text, source="<string>"):
    """One member calendar: optional free_weekdays and free_date_ranges."""
    record = _parse_yaml(text, source)
    if record is None:
        record = {}
    if not isinstance(record, dict):
        raise YamlParseError(source, "expected a mapping with free_weekdays / free_date_ranges")

    weekdays = []
    for value in record.get("free_weekdays") or []:
        day = parse_weekday(value)
        if day is None:
            raise InvalidWeekdayError(source, value)
        weekdays.append(day)

    ranges = []
    for entry in record.get("free_date_ranges") or []:
        if not isinstance(entry, dict):
            raise YamlParseError(source, f"free date range must be a mapping, got {entry!r}")
        start = parse_date(entry.get("start_date"), context=f"{source} start_date")
        end = parse_date(entry.get("end_date"), context=f"{source} end_date")
        if start > end:
            raise InvalidDateRangeError(source, start, end)
        ranges.append(FreeDateRange(start, end))

    return Calendar(free_weekdays=weekdays, free_date_ranges=ranges)


def load_team_calendar_dir(path):
    """TeamCalendar from every *.yaml / *.yml file in a directory, in name order."""
    directory = Path(path)
    if not directory.is_dir():
        raise CalendarDirectoryNotFoundError(path)
    files = sorted(p for p in directory.iterdir()
                   if p.is_file() and p.suffix in YAML_SUFFIXES)
    if not files:
        raise CalendarDirectoryEmptyError(path)
    calendars = []
    for file_path in files:
        calendars.append(parse_calendar(file_path.read_text(encoding="utf-8"), source=file_path))
    return TeamCalendar(calendars=calendars)


# ── Throughput ───────────────────────────────────────────────────────────────

def parse_throughput(text, source="<string>"):
    records = _parse_yaml(text, source)
    if records is None:
        return []
    if not isinstance(records, list):
        raise YamlParseError(source, "expected a list of {date, completed_issues} records")
    throughput = []
    for entry in records:
        if not isinstance(entry, dict):
            raise YamlParseError(source, f"throughput record must be a mapping, got {entry!r}")
        day = parse_date(entry.get("date"), context=f"{source} throughput date")
        try:
            completed = int(entry["completed_issues"])
        except KeyError:
            raise YamlParseError(source, f"record for {day} is missing 'completed_issues'") from None
        except (TypeError, ValueError):
            raise YamlParseError(
                source, f"completed_issues for {day} is not a whole number") from None
        if completed < 0:
            raise YamlParseError(source, f"completed_issues for {day} is negative")
        throughput.append(Throughput(date=day, completed_issues=completed))
    return throughput


def load_throughput(path):
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    return parse_throughput(text, source=path)


def dump_throughput(throughput):
    return _dump([
        {"date": format_date(t.date), "completed_issues": int(t.completed_issues)}
        for t in throughput
    ])


def save_throughput(throughput, path):
    _write_text(path, dump_throughput(throughput))
