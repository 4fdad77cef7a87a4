"""Mermaid markdown: simulated Gantt timeline and project dependency flowchart."""

from collections import defaultdict

from forecasts.errors import MissingWorkPackageResultsError
from forecasts.percentiles import end_date_from_days

GANTT_PERCENTILE = 85
GANTT_DATE_FORMAT = "%d-%m-%Y"


# ── Gantt ────────────────────────────────────────────────────────────────────

def generate_gantt_diagram(project, simulation, start_date, level=GANTT_PERCENTILE):
    """Gantt chart of each item from its dependencies' finish to its own, at `level`."""
    if simulation.work_packages is None:
        raise MissingWorkPackageResultsError()
    finish = {wp.id: wp.percentiles.at(level) for wp in simulation.work_packages}

    lines = [
        "",
        f"# {project.name} Timeline",
        "```mermaid",
        "gantt",
        "    dateFormat  DD-MM-YYYY",
    ]
    for item in project.work_packages:
        if item.id not in finish:
            raise MissingWorkPackageResultsError(item.id)
        dep_finishes = [finish[dep] for dep in item.dependency_ids() if dep in finish]
        begin = max(dep_finishes, default=0.0)
        start = end_date_from_days(start_date, begin).strftime(GANTT_DATE_FORMAT)
        end = end_date_from_days(start_date, finish[item.id]).strftime(GANTT_DATE_FORMAT)
        lines.append(f"    {item.id} {item.label} :{item.id}, {start}, {end}")
    lines.append("```")
    return "\n".join(lines)


# ── Flowchart ────────────────────────────────────────────────────────────────

def generate_flow_diagram(project):
    lines = ["flowchart TD"]
    for item in project.work_packages:
        lines.append(f"    {item.id}[{item.id}\n    {item.label}]")
    for item in project.work_packages:
        for dep in item.dependency_ids():
            lines.append(f"    {dep} --> {item.id}")

    groups = defaultdict(list)
    for item in project.work_packages:
        if item.subgraph is not None:
            groups[item.subgraph].append(item.id)
    if groups:
        lines.append("")
        names = sorted(groups)
        for idx, name in enumerate(names):
            lines.append(f"    subgraph {name}")
            lines.extend(f"        {item_id}" for item_id in groups[name])
            lines.append("    end")
            if idx + 1 < len(names):
                lines.append("")
        lines.append("")
    return "\n".join(lines)


def generate_markdown_descriptions(project):
    blocks = []
    for item in project.work_packages:
        if not item.description or not item.description.strip():
            continue
        blocks.append(f"## {item.id}: {item.label}\n{item.description.rstrip()}")
    return "\n\n".join(blocks)


def generate_project_markdown(project):
    diagram = generate_flow_diagram(project)
    descriptions = generate_markdown_descriptions(project)
    text = f"# Project Dependencies Diagram\n```mermaid\n{diagram}\n```\n"
    if descriptions:
        text += f"\n{descriptions}\n"
    return text


def write_markdown(text, output_path):
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(text)
