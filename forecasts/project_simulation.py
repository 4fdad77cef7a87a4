"""
Dependency-aware Monte Carlo simulation of a project.

Each trial visits the work items in topological order. An item becomes ready
when its last dependency finishes; it then takes a duration drawn from its
estimate. Story-point work is measured in capacity-days (points / velocity)
and is laid onto the team calendar, so free days stretch it. Three-point and
reference estimates are elapsed days and are added directly. The latest
finish of a trial is the project duration for that trial.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import List, Tuple

import numpy as np

from forecasts.calendar import CachedCalendar, TeamCalendar, advance_by_capacity
from forecasts.errors import (
    ConfigurationError,
    EmptyProjectError,
    InvalidEstimateError,
    InvalidIterationsError,
    InvalidVelocityValueError,
    MissingEstimateError,
    MissingVelocityError,
    UnresolvedReferenceError,
)
from forecasts.graph import topological_sort
from forecasts.model import (
    ReferenceEstimate,
    StoryPointEstimate,
    ThreePointEstimate,
    parse_date,
)
from forecasts.reports import (
    SimulationOutput,
    WorkPackageSimulation,
    build_report,
    work_package_percentiles,
)
from forecasts.sampling import BetaPertSampler, story_point_triplet, validate_triplet
from forecasts.velocity import calculate_velocity

DEFAULT_ITERATIONS = 10000


@dataclass
class SimulationNode:
    """Per-run state of one work item."""
    id: str
    triplet: Tuple[float, float, float]
    uses_velocity: bool
    dependencies: List[str]
    samples: List[float] = field(default_factory=list)


# ── Node preparation ─────────────────────────────────────────────────────────

def _resolve_triplet(item):
    estimate = item.estimate
    if estimate is None:
        raise MissingEstimateError(item.id)
    if isinstance(estimate, StoryPointEstimate):
        return story_point_triplet(float(estimate.value)), True
    if isinstance(estimate, ThreePointEstimate):
        return estimate.as_triplet(), False
    if isinstance(estimate, ReferenceEstimate):
        if estimate.cached is None:
            raise UnresolvedReferenceError(item.id, estimate.report_file_path)
        return estimate.cached.as_triplet(), False
    raise InvalidEstimateError(item.id, f"unsupported estimate {type(estimate).__name__}")


def build_simulation_nodes(project):
    """Nodes keyed by item id (file order), with every estimate checked up front."""
    nodes = {}
    for item in project.work_packages:
        triplet, uses_velocity = _resolve_triplet(item)
        triplet = tuple(float(v) for v in triplet)
        try:
            validate_triplet(*triplet)
        except ValueError as exc:
            raise InvalidEstimateError(item.id, str(exc)) from None
        nodes[item.id] = SimulationNode(
            id=item.id,
            triplet=triplet,
            uses_velocity=uses_velocity,
            dependencies=item.dependency_ids(),
        )
    return nodes


def _check_velocity(nodes, velocity):
    if not any(node.uses_velocity for node in nodes.values()):
        return
    if velocity is None:
        raise MissingVelocityError()
    if velocity <= 0:
        raise InvalidVelocityValueError(velocity)


# ── Trials ───────────────────────────────────────────────────────────────────

def _run_trials(nodes, order, velocity, iterations, start_date, sampler, calendar):
    """Run `iterations` trials; returns (total durations, {id: finish samples})."""
    totals = []
    samples = {node_id: [] for node_id in nodes}
    for _ in range(iterations):
        earliest_finish = {}
        for node_id in order:
            node = nodes[node_id]
            ready = max((earliest_finish[dep] for dep in node.dependencies), default=0.0)
            try:
                drawn = sampler.sample(*node.triplet)
            except ValueError as exc:
                raise InvalidEstimateError(node_id, str(exc)) from None
            if node.uses_velocity:
                finish = advance_by_capacity(calendar, start_date, ready, drawn / velocity)
            else:
                finish = ready + drawn
            earliest_finish[node_id] = finish
            samples[node_id].append(finish)
        totals.append(max(earliest_finish.values(), default=0.0))
    return totals, samples


def _aggregate(nodes, totals, samples, start_date, iterations, velocity):
    totals = sorted(totals)
    report = build_report(totals, start_date, iterations, len(nodes), velocity=velocity)
    work_packages = [
        WorkPackageSimulation(id=node_id, percentiles=work_package_percentiles(samples[node_id]))
        for node_id in nodes
    ]
    for node_id, node in nodes.items():
        node.samples = samples[node_id]
    return SimulationOutput(report=report, results=totals, work_packages=work_packages)


def run_simulation(project, order, velocity, iterations, start_date, sampler, calendar=None):
    """Run the Monte Carlo loop single-threaded with the given sampler.

    `order` must be a topological order of the project's items (see
    graph.topological_sort). `velocity` may be None when no item uses story
    points.
    """
    if iterations <= 0:
        raise InvalidIterationsError()
    if not project.work_packages:
        raise EmptyProjectError()
    calendar = calendar if calendar is not None else TeamCalendar()
    return _run_single(build_simulation_nodes(project), order, velocity, iterations,
                       start_date, sampler, calendar)


def _run_single(nodes, order, velocity, iterations, start_date, sampler, calendar):
    _check_velocity(nodes, velocity)
    totals, samples = _run_trials(nodes, order, velocity, iterations, start_date, sampler,
                                  CachedCalendar(calendar))
    return _aggregate(nodes, totals, samples, start_date, iterations, velocity)


def _split_iterations(iterations, workers):
    base, extra = divmod(iterations, workers)
    return [base + (1 if i < extra else 0) for i in range(workers)]


def _run_parallel(nodes, order, velocity, iterations, start_date, calendar, seed, workers):
    """Fan trials out over a thread pool, one independently seeded generator per chunk.

    Chunks are merged in submission order, so a fixed (seed, workers) pair
    gives identical results.
    """
    calendar = CachedCalendar(calendar)
    _check_velocity(nodes, velocity)
    sizes = [size for size in _split_iterations(iterations, workers) if size > 0]
    seeds = np.random.SeedSequence(seed).spawn(len(sizes))

    with ThreadPoolExecutor(max_workers=len(sizes)) as pool:
        futures = [
            pool.submit(_run_trials, nodes, order, velocity, size, start_date,
                        BetaPertSampler(np.random.default_rng(child)), calendar)
            for size, child in zip(sizes, seeds)
        ]
        chunks = [future.result() for future in futures]

    totals = []
    samples = {node_id: [] for node_id in nodes}
    for chunk_totals, chunk_samples in chunks:
        totals.extend(chunk_totals)
        for node_id, values in chunk_samples.items():
            samples[node_id].extend(values)
    return _aggregate(nodes, totals, samples, start_date, iterations, velocity)


# ── Entry points ─────────────────────────────────────────────────────────────

def simulate_project(project, iterations=DEFAULT_ITERATIONS, start_date=None,
                     calendar=None, sampler=None, seed=None, workers=1):
    """Order the graph, calibrate velocity if needed and run the simulation.

    With no sampler a BetaPertSampler seeded by `seed` is used. `workers > 1`
    splits the trials over threads with one generator each; a caller-supplied
    sampler always runs single-threaded.
    """
    if iterations <= 0:
        raise InvalidIterationsError()
    if not project.work_packages:
        raise EmptyProjectError()
    if workers < 1:
        raise ConfigurationError("workers must be at least 1")
    if start_date is None:
        start_date = date.today()
    elif not isinstance(start_date, date):
        start_date = parse_date(start_date, context="start date")
    calendar = calendar if calendar is not None else TeamCalendar()

    order = topological_sort(project)
    nodes = build_simulation_nodes(project)
    velocity = None
    if any(node.uses_velocity for node in nodes.values()):
        velocity = calculate_velocity(project, calendar)

    if workers > 1 and sampler is None:
        return _run_parallel(nodes, order, velocity, iterations, start_date,
                             calendar, seed, workers)
    if sampler is None:
        sampler = BetaPertSampler(seed=seed)
    return _run_single(nodes, order, velocity, iterations, start_date, sampler, calendar)


def simulate_project_from_yaml_file(path, iterations=DEFAULT_ITERATIONS, start_date=None,
                                    calendar_dir=None, seed=None, workers=1,
                                    sampler=None):
    """Load a project (and optional calendar directory) and simulate it."""
    from forecasts.yaml_io import load_project, load_team_calendar_dir

    project = load_project(path)
    calendar = load_team_calendar_dir(calendar_dir) if calendar_dir else TeamCalendar()
    output = simulate_project(project, iterations, start_date, calendar=calendar,
                              sampler=sampler, seed=seed, workers=workers)
    output.report = output.report.with_data_source(Path(path).name)
    return output
