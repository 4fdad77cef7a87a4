"""
Command line front end.

Usage:
    forecasts simulate -i project.yaml -o report.yaml [-s 2026-02-16] [--calendar-dir team/]
    forecasts simulate-n -f throughput.yaml -o report.yaml -n 20 -s 2026-02-16
    forecasts plot-project -i project.yaml -o project.md
    forecasts plot-throughput -i throughput.yaml -o throughput.png
"""

import argparse
import os
import sys
from datetime import date

from forecasts.calendar import TeamCalendar
from forecasts.charts import write_histogram_png, write_throughput_png
from forecasts.diagrams import (
    GANTT_PERCENTILE,
    generate_gantt_diagram,
    generate_project_markdown,
    write_markdown,
)
from forecasts.errors import ForecastError
from forecasts.model import parse_date
from forecasts.project_simulation import DEFAULT_ITERATIONS, simulate_project
from forecasts.reports import format_simulation_report
from forecasts.throughput_simulation import simulate_from_throughput_file
from forecasts.yaml_io import load_project, load_team_calendar_dir, load_throughput, save_report


# ── Commands ─────────────────────────────────────────────────────────────────

def cmd_simulate(args):
    start_date = parse_date(args.start_date, context="--start-date") if args.start_date else date.today()
    print(f"Loading project from: {args.input}")
    project = load_project(args.input)
    calendar = load_team_calendar_dir(args.calendar_dir) if args.calendar_dir else TeamCalendar()
    if args.calendar_dir:
        print(f"  Team calendars: {len(calendar.calendars)}")
    print(f"  Work packages: {len(project.work_packages)}")

    simulation = simulate_project(project, args.iterations, start_date, calendar=calendar,
                                  seed=args.seed, workers=args.workers)
    simulation.report = simulation.report.with_data_source(os.path.basename(args.input))

    histogram_path = f"{args.output}.png"
    gantt_path = f"{args.output}.gantt.md"
    gantt = generate_gantt_diagram(project, simulation, start_date, GANTT_PERCENTILE)
    save_report(simulation.report, args.output)
    write_histogram_png(simulation.results, histogram_path)
    write_markdown(gantt, gantt_path)

    print()
    print(format_simulation_report(simulation.report))
    print()
    print(f"Simulation result written to {args.output}")
    print(f"Gantt diagram written to {gantt_path}")


def cmd_simulate_n(args):
    print(f"Loading throughput from: {args.throughput_file}")
    simulation = simulate_from_throughput_file(
        args.throughput_file, args.iterations, args.number_of_issues, args.start_date,
        calendar_dir=args.calendar_dir, seed=args.seed)

    save_report(simulation.report, args.output)
    write_histogram_png(simulation.results, f"{args.output}.png")

    print()
    print(format_simulation_report(simulation.report))
    print()
    print(f"Simulation result for {args.number_of_issues} items written to {args.output}")


def cmd_plot_project(args):
    project = load_project(args.input)
    write_markdown(generate_project_markdown(project), args.output)
    print(f"Project diagram written to {args.output}")


def cmd_plot_throughput(args):
    throughput = load_throughput(args.input)
    write_throughput_png(throughput, args.output)


# ── Argument parsing ─────────────────────────────────────────────────────────

def positive_int(value):
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a whole number, got {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be greater than zero, got {number}")
    return number


def build_parser():
    parser = argparse.ArgumentParser(
        prog="forecasts",
        description="Monte Carlo delivery forecasts from project estimates or team throughput",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("simulate", help="Simulate a project YAML file with dependencies")
    p.add_argument("-i", "--input", required=True, help="Project YAML file")
    p.add_argument("-o", "--output", required=True,
                   help="Report YAML file; OUTPUT.png and OUTPUT.gantt.md are written beside it")
    p.add_argument("-s", "--start-date", default=None,
                   help="Start date (YYYY-MM-DD, default: today)")
    p.add_argument("--iterations", type=positive_int, default=DEFAULT_ITERATIONS,
                   help=f"Monte Carlo trials (default: {DEFAULT_ITERATIONS})")
    p.add_argument("--calendar-dir", default=None,
                   help="Directory of team member calendar YAML files")
    p.add_argument("--seed", type=int, default=None, help="Random seed for reproducible runs")
    p.add_argument("--workers", type=positive_int, default=1,
                   help="Threads to split the trials over (default: 1)")
    p.set_defaults(func=cmd_simulate)

    p = sub.add_parser("simulate-n", help="Forecast when N issues are done from throughput history")
    p.add_argument("-f", "--throughput-file", required=True, help="Throughput YAML file")
    p.add_argument("-o", "--output", required=True,
                   help="Report YAML file; OUTPUT.png is written beside it")
    p.add_argument("-n", "--number-of-issues", type=positive_int, required=True,
                   help="Number of issues to complete")
    p.add_argument("-s", "--start-date", required=True, help="Start date (YYYY-MM-DD)")
    p.add_argument("--iterations", type=positive_int, default=DEFAULT_ITERATIONS,
                   help=f"Monte Carlo trials (default: {DEFAULT_ITERATIONS})")
    p.add_argument("--calendar-dir", default=None,
                   help="Directory of team member calendar YAML files")
    p.add_argument("--seed", type=int, default=None, help="Random seed for reproducible runs")
    p.set_defaults(func=cmd_simulate_n)

    p = sub.add_parser("plot-project", help="Write a Mermaid dependency diagram of a project")
    p.add_argument("-i", "--input", required=True, help="Project YAML file")
    p.add_argument("-o", "--output", required=True, help="Markdown output file")
    p.set_defaults(func=cmd_plot_project)

    p = sub.add_parser("plot-throughput", help="Plot throughput history as a PNG bar chart")
    p.add_argument("-i", "--input", required=True, help="Throughput YAML file")
    p.add_argument("-o", "--output", required=True, help="PNG output file")
    p.set_defaults(func=cmd_plot_throughput)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        args.func(args)
    except (ForecastError, OSError) as e:
        print(f"  ERROR: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
