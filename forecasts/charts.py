"""PNG charts: histogram of simulated durations and historical throughput bars."""

import math

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import matplotlib.dates as mdates
import numpy as np

from forecasts.errors import EmptyThroughputError
from forecasts.percentiles import percentile
from forecasts.throughput_simulation import throughput_frame

STYLE = {
    "font_family": "DejaVu Sans",
    "title_size": 16,
    "label_size": 9.5,
    "tick_size": 8.5,
    "small_size": 7.5,
    "bg_color": "#FAFAFA",
    "panel_bg": "#FFFFFF",
    "text_primary": "#1A1A2E",
    "text_secondary": "#555555",
    "grid_color": "#E0E0E0",
    "bar_color": "#1E7ACC",
    "throughput_color": "#43A047",
    "marker_colors": {50: "#FF8F00", 85: "#D32F2F"},
    "dpi": 150,
    "fig_size": (10, 6),
}


# ── Style Helpers ────────────────────────────────────────────────────────────

def apply_style():
    """Configure matplotlib rcParams for consistent styling."""
    plt.rcParams.update({
        "font.family": STYLE["font_family"],
        "font.size": STYLE["label_size"],
        "axes.facecolor": STYLE["panel_bg"],
        "figure.facecolor": STYLE["bg_color"],
        "axes.edgecolor": STYLE["grid_color"],
        "xtick.color": STYLE["text_secondary"],
        "ytick.color": STYLE["text_secondary"],
        "text.color": STYLE["text_primary"],
    })


def style_axes(ax, title="", xlabel="", ylabel=""):
    """Apply consistent axis styling to any subplot."""
    if title:
        ax.set_title(title, fontsize=STYLE["title_size"], fontweight="bold",
                     color=STYLE["text_primary"], pad=12, loc="left")
    if xlabel:
        ax.set_xlabel(xlabel, fontsize=STYLE["label_size"], color=STYLE["text_secondary"])
    if ylabel:
        ax.set_ylabel(ylabel, fontsize=STYLE["label_size"], color=STYLE["text_secondary"])
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)
    ax.spines["left"].set_linewidth(0.6)
    ax.spines["bottom"].set_linewidth(0.6)
    ax.grid(axis="y", alpha=0.3, linewidth=0.5, color=STYLE["grid_color"])
    ax.tick_params(labelsize=STYLE["tick_size"])
    ax.set_axisbelow(True)


def _save(fig, output_path):
    fig.savefig(output_path, dpi=STYLE["dpi"], bbox_inches="tight", facecolor=STYLE["bg_color"])
    plt.close(fig)


# ── Histogram ────────────────────────────────────────────────────────────────

def histogram_bins(results):
    """ceil(sqrt(n)) equal-width bins, or a single bin when every value is equal."""
    values = np.asarray(results, dtype=float)
    if values.min() == values.max():
        return 1
    return max(1, math.ceil(math.sqrt(len(values))))


def write_histogram_png(results, output_path, markers=(50, 85)):
    """Histogram of simulated durations with dashed lines at the `markers` percentiles.

    Writes nothing when there are no results.
    """
    if len(results) == 0:
        return False

    apply_style()
    ordered = np.sort(np.asarray(results, dtype=float))
    fig, ax = plt.subplots(figsize=STYLE["fig_size"])
    ax.hist(ordered, bins=histogram_bins(ordered), color=STYLE["bar_color"],
            edgecolor="white", linewidth=0.6, zorder=3)

    for level in markers:
        value = percentile(ordered, level)
        color = STYLE["marker_colors"].get(level, STYLE["text_secondary"])
        ax.axvline(value, color=color, linestyle="--", linewidth=1.4, zorder=4)
        ax.text(value, ax.get_ylim()[1] * 0.97, f" P{level}: {value:.2f}",
                color=color, fontsize=STYLE["small_size"] + 1, va="top", ha="left")

    style_axes(ax, title="Simulation Results", xlabel="Duration in days", ylabel="Frequency")
    _save(fig, output_path)
    print(f"  Histogram saved: {output_path}")
    return True


# ── Throughput ───────────────────────────────────────────────────────────────

def write_throughput_png(throughput, output_path):
    """One bar per historical day of completed issues."""
    if not throughput:
        raise EmptyThroughputError()

    apply_style()
    frame = throughput_frame(throughput)
    dates = [mdates.date2num(d) for d in frame["date"]]
    fig, ax = plt.subplots(figsize=STYLE["fig_size"])
    ax.bar(dates, frame["completed_issues"], width=0.8,
           color=STYLE["throughput_color"], zorder=3)
    ax.set_ylim(0, max(1, int(frame["completed_issues"].max()) + 1))
    ax.xaxis.set_major_locator(mdates.AutoDateLocator(maxticks=10))
    ax.xaxis.set_major_formatter(mdates.DateFormatter("%Y-%m-%d"))
    fig.autofmt_xdate()

    style_axes(ax, title="Throughput Over Time", xlabel="Date", ylabel="Completed issues")
    _save(fig, output_path)
    print(f"  Throughput chart saved: {output_path}")
    return True
