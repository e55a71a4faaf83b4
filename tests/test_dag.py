"""Tests for devmaker.dag."""

from __future__ import annotations

import random
from pathlib import Path

import pytest

from devmaker.dag import build_graph, execution_order, topological_order
from devmaker.errors import ConfigError
from devmaker.model import JobDescriptor, JobInfo


def _job(name: str, depends: list[str] | None = None) -> JobDescriptor:
    return JobDescriptor(
        name=name,
        directory=Path("/jobs") / name,
        runner=Path("/jobs") / name / "run.sh",
        info=JobInfo(depends=depends or []),
    )


def _assert_valid_order(jobs: list[JobDescriptor], order: list[str]) -> None:
    assert sorted(order) == sorted(j.name for j in jobs)
    position = {name: i for i, name in enumerate(order)}
    for job in jobs:
        for dep in job.depends:
            assert position[dep] < position[job.name], f"{dep} must run before {job.name}"


def _random_dag(rng: random.Random, size: int) -> list[JobDescriptor]:
    # edges only point from later to earlier names, so the graph is acyclic
    names = [f"job{i}" for i in range(size)]
    jobs = []
    for i, name in enumerate(names):
        deps = [names[j] for j in range(i) if rng.random() < 0.3]
        jobs.append(_job(name, deps))
    rng.shuffle(jobs)
    return jobs


DIAMOND = [
    _job("setup"),
    _job("lint", ["setup"]),
    _job("unit", ["setup"]),
    _job("package", ["lint", "unit"]),
    _job("e2e", ["package"]),
]


def test_build_graph_edges_point_from_dependency_to_dependent() -> None:
    graph = build_graph(DIAMOND)

    assert graph.edges["setup"] == {"lint", "unit"}
    assert graph.indegree == {"setup": 0, "lint": 1, "unit": 1, "package": 2, "e2e": 1}
    assert graph.dependencies_of("package") == {"lint", "unit"}


def test_repeated_dependency_is_one_edge() -> None:
    graph = build_graph([_job("a"), _job("b", ["a", "a"])])
    assert graph.indegree["b"] == 1
    assert execution_order([_job("a"), _job("b", ["a", "a"])]) == ["a", "b"]


@pytest.mark.parametrize("seed", range(25))
def test_order_is_valid_under_any_tie_break(seed: int) -> None:
    _assert_valid_order(DIAMOND, execution_order(DIAMOND, rng=random.Random(seed)))


@pytest.mark.parametrize("seed", range(40))
def test_random_acyclic_graphs_are_ordered_validly(seed: int) -> None:
    rng = random.Random(seed)
    jobs = _random_dag(rng, size=rng.randint(1, 15))
    _assert_valid_order(jobs, execution_order(jobs, rng=random.Random(seed * 7 + 1)))


def test_tie_break_varies_with_rng() -> None:
    jobs = [_job(name) for name in "abcdefgh"]
    orders = {tuple(execution_order(jobs, rng=random.Random(seed))) for seed in range(20)}
    assert len(orders) > 1


def test_unknown_dependency_names_job_and_dependency() -> None:
    with pytest.raises(ConfigError) as exc:
        build_graph([_job("app", ["base"])])

    assert exc.value.kind == "unknown-dependency"
    assert exc.value.details["job"] == "app"
    assert exc.value.details["dependency"] == "base"


def test_duplicate_job_names_are_rejected() -> None:
    with pytest.raises(ConfigError) as exc:
        build_graph([_job("a"), _job("a")])
    assert exc.value.kind == "duplicate-job"


def test_self_dependency_is_a_cycle() -> None:
    with pytest.raises(ConfigError) as exc:
        execution_order([_job("x", ["x"])])

    assert exc.value.kind == "dependency-cycle"
    assert "x -> x" in exc.value.message


def test_two_job_cycle() -> None:
    with pytest.raises(ConfigError) as exc:
        execution_order([_job("x", ["y"]), _job("y", ["x"])])

    assert exc.value.kind == "dependency-cycle"
    assert exc.value.details["unschedulable"] == "x, y"


@pytest.mark.parametrize("length", [3, 5, 9])
def test_long_cycles_behind_valid_jobs_are_detected(length: int) -> None:
    ring = [f"r{i}" for i in range(length)]
    jobs = [_job("root")]
    jobs += [_job(name, [ring[i - 1], "root"]) for i, name in enumerate(ring)]
    jobs.append(_job("tail", [ring[0]]))

    with pytest.raises(ConfigError) as exc:
        topological_order(build_graph(jobs), rng=random.Random(length))

    # the reported path is a real cycle made only of ring members
    path = exc.value.message.split(": ", 1)[1].split(" -> ")
    assert path[0] == path[-1]
    assert set(path) <= set(ring)
    assert len(path) == length + 1
    assert "tail" in exc.value.details["unschedulable"]
    assert "root" not in exc.value.details["unschedulable"]
