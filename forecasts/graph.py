"""Dependency graph of work items and its processing order."""

import networkx as nx

from forecasts.errors import (
    CyclicDependencyError,
    DuplicateIssueIdError,
    MissingIssueIdError,
    UnknownDependencyError,
)


def build_dependency_graph(project):
    """DiGraph with one node per item and an edge dependency -> dependent."""
    graph = nx.DiGraph()
    for item in project.work_packages:
        if not item.id or not str(item.id).strip():
            raise MissingIssueIdError()
        if item.id in graph:
            raise DuplicateIssueIdError(item.id)
        graph.add_node(item.id)

    for item in project.work_packages:
        for dep in item.dependency_ids():
            if dep not in graph:
                raise UnknownDependencyError(item.id, dep)
            graph.add_edge(dep, item.id)
    return graph


def topological_sort(project):
    """Item ids ordered so every dependency comes before its dependents.

    The order is deterministic for a given project file, which keeps seeded
    runs reproducible.
    """
    graph = build_dependency_graph(project)
    try:
        return list(nx.topological_sort(graph))
    except nx.NetworkXUnfeasible:
        cycle = [edge[0] for edge in nx.find_cycle(graph)]
        raise CyclicDependencyError(cycle) from None
