"""Workflow execution core.

- Data model for agents, tasks, workflows and executions
- Graph integrity validation (edge checks, cycle rejection, reconciliation)
- Task invocation, retry policy and the wave scheduler
"""

from agent_workflow_runner.workflow.errors import (
    BlockedDependencyError,
    DeadlockError,
    WorkflowError,
    WorkflowValidationError,
)
from agent_workflow_runner.workflow.graph import (
    EdgeValidation,
    GraphEdge,
    GraphNode,
    NodeKind,
    build_graph,
    reconcile_edges,
    sync_edges,
    validate_dependency,
    validate_edge,
    validate_graph,
    validate_workflow,
)
from agent_workflow_runner.workflow.invoker import TaskInvoker
from agent_workflow_runner.workflow.models import (
    Agent,
    AgentRole,
    Task,
    TaskResult,
    TaskStatus,
    Workflow,
    WorkflowExecution,
    WorkflowStatus,
)
from agent_workflow_runner.workflow.retry import RetryPolicy
from agent_workflow_runner.workflow.scheduler import (
    Scheduler,
    get_execution_summary,
    pause_workflow,
    resume_workflow,
    run_workflow,
    stop_workflow,
)
from agent_workflow_runner.workflow.state_machine import ExecutionStatus, IllegalTransitionError

__all__ = [
    "Agent",
    "AgentRole",
    "BlockedDependencyError",
    "DeadlockError",
    "EdgeValidation",
    "ExecutionStatus",
    "GraphEdge",
    "GraphNode",
    "IllegalTransitionError",
    "NodeKind",
    "RetryPolicy",
    "Scheduler",
    "Task",
    "TaskInvoker",
    "TaskResult",
    "TaskStatus",
    "Workflow",
    "WorkflowError",
    "WorkflowExecution",
    "WorkflowStatus",
    "WorkflowValidationError",
    "build_graph",
    "get_execution_summary",
    "pause_workflow",
    "reconcile_edges",
    "resume_workflow",
    "run_workflow",
    "stop_workflow",
    "sync_edges",
    "validate_dependency",
    "validate_edge",
    "validate_graph",
    "validate_workflow",
]
