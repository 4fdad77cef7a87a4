"""
Simulation reports: percentile records, per-item results and the text summary.

SimulationReport is the persisted artifact (written as YAML, and read back
by reference estimates in other projects).
"""

from dataclasses import dataclass, replace
from typing import List, Optional

from forecasts.model import format_date, parse_date
from forecasts.percentiles import REPORT_PERCENTILES, end_date_from_days, percentile


@dataclass(frozen=True)
class SimulationPercentile:
    days: float
    date: str


@dataclass(frozen=True)
class SimulationReport:
    data_source: str
    start_date: str
    velocity: Optional[float]
    iterations: int
    simulated_items: int
    p0: SimulationPercentile
    p50: SimulationPercentile
    p85: SimulationPercentile
    p100: SimulationPercentile

    def with_data_source(self, data_source):
        return replace(self, data_source=data_source)

    def to_dict(self):
        record = {
            "data_source": self.data_source,
            "start_date": self.start_date,
            "velocity": self.velocity,
            "iterations": self.iterations,
            "simulated_items": self.simulated_items,
        }
        for key in ("p0", "p50", "p85", "p100"):
            value = getattr(self, key)
            record[key] = {"days": value.days, "date": value.date}
        return record

    @classmethod
    def from_dict(cls, record):
        """Build a report from parsed YAML, validating every date field."""
        def pct(key):
            value = record[key]
            day = parse_date(value["date"], context=f"report {key}.date")
            return SimulationPercentile(days=float(value["days"]), date=format_date(day))

        start = parse_date(record["start_date"], context="report start_date")
        velocity = record.get("velocity")
        return cls(
            data_source=str(record.get("data_source", "") or ""),
            start_date=format_date(start),
            velocity=float(velocity) if velocity is not None else None,
            iterations=int(record["iterations"]),
            simulated_items=int(record["simulated_items"]),
            p0=pct("p0"),
            p50=pct("p50"),
            p85=pct("p85"),
            p100=pct("p100"),
        )


@dataclass(frozen=True)
class WorkPackagePercentiles:
    p0: float
    p50: float
    p85: float
    p100: float

    def at(self, level):
        """Closest reported percentile at or above `level`."""
        if level <= 0:
            return self.p0
        if level <= 50:
            return self.p50
        if level <= 85:
            return self.p85
        return self.p100


@dataclass(frozen=True)
class WorkPackageSimulation:
    id: str
    percentiles: WorkPackagePercentiles


@dataclass
class SimulationOutput:
    report: SimulationReport
    results: List[float]
    work_packages: Optional[List[WorkPackageSimulation]] = None

    def work_package(self, item_id):
        for wp in self.work_packages or []:
            if wp.id == item_id:
                return wp
        return None


# ── Building reports ─────────────────────────────────────────────────────────

def build_report(sorted_results, start_date, iterations, simulated_items,
                 velocity=None, data_source="", to_date=end_date_from_days):
    """Reduce sorted total durations to p0/p50/p85/p100 with mapped dates."""
    records = {}
    for level in REPORT_PERCENTILES:
        days = percentile(sorted_results, level)
        records[f"p{level}"] = SimulationPercentile(
            days=days, date=format_date(to_date(start_date, days)))
    return SimulationReport(
        data_source=data_source,
        start_date=format_date(start_date),
        velocity=velocity,
        iterations=iterations,
        simulated_items=simulated_items,
        **records,
    )


def work_package_percentiles(values):
    ordered = sorted(values)
    return WorkPackagePercentiles(*(percentile(ordered, level) for level in REPORT_PERCENTILES))


# ── Text summary ─────────────────────────────────────────────────────────────

def format_simulation_report(report):
    velocity = f"{report.velocity:.2f}" if report.velocity is not None else "n/a"
    lines = [
        "Simulation Report",
        f"Data source: {report.data_source}",
        f"Start date: {report.start_date}",
        f"Iterations: {report.iterations}",
        f"Simulated items: {report.simulated_items}",
        f"Velocity: {velocity}",
        "",
        "Percentiles:",
        "Percentile | Days | Date",
        "-----------|------|-----",
    ]
    for label, record in (("P0", report.p0), ("P50", report.p50),
                          ("P85", report.p85), ("P100", report.p100)):
        lines.append(f"{label} | {record.days:.2f} | {record.date}")
    return "\n".join(lines)
