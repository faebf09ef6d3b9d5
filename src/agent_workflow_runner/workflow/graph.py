"""Graph integrity validation for workflow dependency graphs.

The graph seen by an editing surface has two node kinds: agents and tasks.
Edges run agent -> task (assignment) or task -> task (dependency, from the
dependency to the dependent task). Every check here is a pure function of the
nodes and edges supplied by the caller.

Cycle checks walk the graph depth-first once per candidate edge, O(V+E).
That is fine for workflows of tens of tasks; it is the known scaling limit.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from agent_workflow_runner.workflow.errors import WorkflowValidationError
from agent_workflow_runner.workflow.models import Workflow

logger = logging.getLogger(__name__)


class NodeKind(str, Enum):
    AGENT = "agent"
    TASK = "task"


@dataclass(frozen=True, slots=True)
class GraphNode:
    id: str
    kind: NodeKind


@dataclass(frozen=True, slots=True)
class GraphEdge:
    source: str
    target: str
    id: str = ""


@dataclass(frozen=True, slots=True)
class EdgeValidation:
    valid: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.valid


_VALID = EdgeValidation(valid=True)


def _invalid(reason: str) -> EdgeValidation:
    return EdgeValidation(valid=False, reason=reason)


def _task_adjacency(
    edges: Iterable[GraphEdge], kinds: dict[str, NodeKind]
) -> dict[str, set[str]]:
    adjacency: dict[str, set[str]] = defaultdict(set)
    for edge in edges:
        if kinds.get(edge.source) is NodeKind.TASK and kinds.get(edge.target) is NodeKind.TASK:
            adjacency[edge.source].add(edge.target)
    return adjacency


def _reaches(start: str, goal: str, adjacency: dict[str, set[str]]) -> bool:
    visited: set[str] = set()
    stack = [start]
    while stack:
        node_id = stack.pop()
        if node_id == goal:
            return True
        if node_id in visited:
            continue
        visited.add(node_id)
        stack.extend(adjacency.get(node_id, ()))
    return False


def validate_edge(
    edge: GraphEdge, nodes: Iterable[GraphNode], edges: Iterable[GraphEdge]
) -> EdgeValidation:
    """Decide whether ``edge`` may be committed on top of ``edges``.

    Must be called before the edge is added, so the task graph stays acyclic
    at all times. ``edge`` itself is ignored if it already appears in
    ``edges``, which makes re-validating a committed edge give the same answer.
    """

    kinds = {node.id: node.kind for node in nodes}
    source_kind = kinds.get(edge.source)
    target_kind = kinds.get(edge.target)

    if source_kind is None:
        return _invalid(f"Unknown source node: {edge.source}")
    if target_kind is None:
        return _invalid(f"Unknown target node: {edge.target}")
    if edge.source == edge.target:
        return _invalid(f"Node {edge.source} cannot connect to itself")
    if source_kind is NodeKind.AGENT and target_kind is not NodeKind.TASK:
        return _invalid(f"Agent {edge.source} can only connect to tasks")
    if target_kind is NodeKind.AGENT:
        return _invalid(f"Agent {edge.target} cannot be a dependency target")

    others = [e for e in edges if e != edge]
    for existing in others:
        if existing.source == edge.source and existing.target == edge.target:
            return _invalid(f"Edge {edge.source} -> {edge.target} already exists")

    if source_kind is NodeKind.AGENT:
        for existing in others:
            if existing.target == edge.target and kinds.get(existing.source) is NodeKind.AGENT:
                return _invalid(
                    f"Task {edge.target} is already assigned to agent {existing.source}"
                )
        return _VALID

    # Adding source -> target closes a cycle iff source is already reachable from target.
    if _reaches(edge.target, edge.source, _task_adjacency(others, kinds)):
        return _invalid(f"Edge {edge.source} -> {edge.target} would create a dependency cycle")
    return _VALID


def validate_graph(nodes: Iterable[GraphNode], edges: Iterable[GraphEdge]) -> EdgeValidation:
    """Validate a whole edge set by committing its edges one at a time."""

    node_list = list(nodes)
    committed: list[GraphEdge] = []
    for edge in edges:
        if edge in committed:
            return _invalid(f"Edge {edge.source} -> {edge.target} already exists")
        verdict = validate_edge(edge, node_list, committed)
        if not verdict:
            return verdict
        committed.append(edge)
    return _VALID


def reconcile_edges(nodes: Iterable[GraphNode], edges: Iterable[GraphEdge]) -> list[GraphEdge]:
    """Drop edges whose source or target no longer exists (after a node deletion)."""

    node_ids = {node.id for node in nodes}
    edge_list = list(edges)
    kept = [e for e in edge_list if e.source in node_ids and e.target in node_ids]
    if len(kept) != len(edge_list):
        logger.debug(
            "Removed orphaned edges",
            extra={"removed": len(edge_list) - len(kept), "kept": len(kept)},
        )
    return kept


def build_graph(workflow: Workflow) -> tuple[list[GraphNode], list[GraphEdge]]:
    """Project a workflow onto agent/task nodes and the edges its fields imply.

    The result is not validated; dangling references simply produce no edge.
    """

    nodes = [GraphNode(id=a.id, kind=NodeKind.AGENT) for a in workflow.agents]
    nodes.extend(GraphNode(id=t.id, kind=NodeKind.TASK) for t in workflow.tasks)

    agent_ids = {a.id for a in workflow.agents}
    task_ids = {t.id for t in workflow.tasks}
    edges: list[GraphEdge] = []
    for task in workflow.tasks:
        if task.agent_id in agent_ids:
            edges.append(
                GraphEdge(source=task.agent_id, target=task.id, id=f"{task.agent_id}-{task.id}")
            )
        for dep_id in task.dependencies:
            if dep_id in task_ids:
                edges.append(
                    GraphEdge(source=dep_id, target=task.id, id=f"{dep_id}-{task.id}-dep")
                )
    return nodes, edges


def sync_edges(workflow: Workflow, edges: Iterable[GraphEdge]) -> list[GraphEdge]:
    """Bring an edited edge set back in line with the workflow.

    Orphaned edges are removed, then assignment and dependency edges implied by
    the workflow are added where missing, as long as each one validates.
    """

    nodes, wanted = build_graph(workflow)
    synced = reconcile_edges(nodes, edges)
    for edge in wanted:
        if any(e.source == edge.source and e.target == edge.target for e in synced):
            continue
        verdict = validate_edge(edge, nodes, synced)
        if verdict:
            synced.append(edge)
        else:
            logger.info(
                "Skipped edge during sync", extra={"edge": edge.id, "reason": verdict.reason}
            )
    return synced


def dependencies_from_edges(
    nodes: Iterable[GraphNode], edges: Iterable[GraphEdge]
) -> dict[str, list[str]]:
    """Map each task node to the ordered, de-duplicated dependencies its edges encode."""

    kinds = {node.id: node.kind for node in nodes}
    deps: dict[str, list[str]] = {
        node_id: [] for node_id, kind in kinds.items() if kind is NodeKind.TASK
    }
    for edge in edges:
        if kinds.get(edge.source) is NodeKind.TASK and kinds.get(edge.target) is NodeKind.TASK:
            if edge.source not in deps[edge.target]:
                deps[edge.target].append(edge.source)
    return deps


def validate_dependency(workflow: Workflow, task_id: str, depends_on: str) -> EdgeValidation:
    """Check whether ``task_id`` may start depending on ``depends_on``."""

    nodes, edges = build_graph(workflow)
    candidate = GraphEdge(source=depends_on, target=task_id, id=f"{depends_on}-{task_id}-dep")
    return validate_edge(candidate, nodes, edges)


def find_cycle(workflow: Workflow) -> list[str] | None:
    """Return one dependency cycle as a list of task ids, or None."""

    deps = {t.id: list(t.dependencies) for t in workflow.tasks}
    visited: set[str] = set()

    for root in deps:
        if root in visited:
            continue
        # Iterative DFS; a long chain must not hit the recursion limit.
        path = [root]
        on_path = {root}
        pending = [iter(deps[root])]
        visited.add(root)
        while pending:
            dep_id = next(pending[-1], None)
            if dep_id is None:
                pending.pop()
                on_path.discard(path.pop())
                continue
            if dep_id in on_path:
                return path[path.index(dep_id) :] + [dep_id]
            if dep_id in deps and dep_id not in visited:
                visited.add(dep_id)
                path.append(dep_id)
                on_path.add(dep_id)
                pending.append(iter(deps[dep_id]))
    return None


def validate_workflow(workflow: Workflow) -> None:
    """Check a workflow before a run starts.

    Raises:
        WorkflowValidationError: listing every problem found.
    """

    problems: list[str] = []

    task_ids = [t.id for t in workflow.tasks]
    agent_ids = [a.id for a in workflow.agents]
    for label, ids in (("task", task_ids), ("agent", agent_ids)):
        seen: set[str] = set()
        for node_id in ids:
            if node_id in seen:
                problems.append(f"Duplicate {label} id: {node_id}")
            seen.add(node_id)
    for shared in sorted(set(task_ids) & set(agent_ids)):
        problems.append(f"Id {shared} is used by both a task and an agent")

    known_agents = set(agent_ids)
    known_tasks = set(task_ids)
    for task in workflow.tasks:
        if task.agent_id not in known_agents:
            problems.append(f"Task {task.id} references unknown agent {task.agent_id}")
        for dep_id in task.dependencies:
            if dep_id not in known_tasks:
                problems.append(f"Task {task.id} depends on unknown task {dep_id}")

    cycle = find_cycle(workflow)
    if cycle:
        problems.append("Dependency cycle: " + " -> ".join(cycle))

    if problems:
        logger.warning(
            "Workflow validation failed",
            extra={"workflow_id": workflow.id, "problems": problems},
        )
        raise WorkflowValidationError(problems)
