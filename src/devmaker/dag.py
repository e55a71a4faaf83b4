# dag.py
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set

from .errors import ConfigError
from .model import JobDescriptor


@dataclass
class DependencyGraph:
    """
    Jobs keyed by name.

      edges:    dependency -> jobs that must wait for it
      indegree: number of distinct dependencies per job
    """
    nodes: List[str]
    edges: Dict[str, Set[str]]
    indegree: Dict[str, int]

    def dependencies_of(self, name: str) -> Set[str]:
        return {dep for dep, dependents in self.edges.items() if name in dependents}


def build_graph(jobs: Iterable[JobDescriptor]) -> DependencyGraph:
    """
    Build the graph from each job's declared `depends` list.

    Requires:
      - job.name unique
      - every name in job.depends is a discovered job
    """
    jobs = list(jobs)
    names = [j.name for j in jobs]
    if len(set(names)) != len(names):
        dupes = sorted({n for n in names if names.count(n) > 1})
        raise ConfigError(
            kind="duplicate-job",
            message=f"Duplicate job names found: {dupes}",
            details={"jobs": ", ".join(dupes)},
        )

    name_set = set(names)
    edges: Dict[str, Set[str]] = {n: set() for n in names}
    indegree: Dict[str, int] = {n: 0 for n in names}

    for job in jobs:
        for dep in job.depends:
            if dep not in name_set:
                raise ConfigError(
                    kind="unknown-dependency",
                    message=f"Job '{job.name}' depends on missing job '{dep}'",
                    details={"job": job.name, "dependency": dep, "known": ", ".join(sorted(name_set))},
                )
            # Edge dep -> job.name (dep must run before job)
            if job.name not in edges[dep]:
                edges[dep].add(job.name)
                indegree[job.name] += 1

    return DependencyGraph(nodes=names, edges=edges, indegree=indegree)


def _find_cycle(graph: DependencyGraph, stuck: Set[str]) -> List[str]:
    """Walk backwards through unsatisfied dependencies until a job repeats."""
    node = min(stuck)
    path: List[str] = []
    seen: Dict[str, int] = {}
    while node not in seen:
        seen[node] = len(path)
        path.append(node)
        node = min(graph.dependencies_of(node) & stuck)
    # path runs dependent -> dependency; flip it into execution direction
    cycle = path[seen[node]:] + [node]
    return list(reversed(cycle))


def topological_order(graph: DependencyGraph, rng: Optional[random.Random] = None) -> List[str]:
    """
    Return one valid execution order (Kahn's algorithm).

    Which eligible job goes next is unspecified and callers must not rely on
    it. Without `rng` the pick is stable across runs; with `rng` it is random.
    """
    indeg = dict(graph.indegree)  # copy (we mutate it)
    position = {n: i for i, n in enumerate(graph.nodes)}
    ready: List[str] = [n for n in graph.nodes if indeg[n] == 0]
    order: List[str] = []

    while ready:
        idx = rng.randrange(len(ready)) if rng is not None else 0
        node = ready.pop(idx)
        order.append(node)

        for child in sorted(graph.edges[node], key=position.__getitem__):
            indeg[child] -= 1
            if indeg[child] == 0:
                ready.append(child)

    if len(order) != len(graph.nodes):
        stuck = {n for n, d in indeg.items() if d > 0}
        cycle = _find_cycle(graph, stuck)
        raise ConfigError(
            kind="dependency-cycle",
            message=f"Dependency cycle detected: {' -> '.join(cycle)}",
            details={"unschedulable": ", ".join(sorted(stuck))},
        )

    return order


def execution_order(
    jobs: Iterable[JobDescriptor],
    rng: Optional[random.Random] = None,
) -> List[str]:
    return topological_order(build_graph(jobs), rng=rng)
