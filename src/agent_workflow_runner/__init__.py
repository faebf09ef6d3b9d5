"""Agent Workflow Runner.

Drives a dependency graph of agent-assigned tasks to completion:
- pre-run and edit-time graph validation
- concurrent wave scheduling with retries
- pause / resume / stop on a live execution
"""

__version__ = "0.1.0"

from agent_workflow_runner.core.config import RunnerConfig
from agent_workflow_runner.workflow.scheduler import Scheduler

__all__ = ["__version__", "RunnerConfig", "Scheduler"]
