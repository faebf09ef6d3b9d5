"""Console script shim.

The CLI is implemented in `agent_workflow_runner.main`.
"""

from __future__ import annotations

from agent_workflow_runner.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
