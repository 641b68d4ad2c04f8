#!/usr/bin/env python3
"""Demo script to test the workflow runner.

The echo workflow needs no credentials. The research workflow calls the
completion service and needs ANTHROPIC_API_KEY (or NODEFLOW_* settings).
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Add core to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from nodeflow.execution.events import NodeUpdate
from nodeflow.runner import WorkflowRunner, run_workflow_sync


def show(event) -> None:
    if isinstance(event, NodeUpdate) and event.status != "running":
        print(f"  {event.node_id}: {event.status}" + (f" ({event.error})" if event.error else ""))


async def demo_async():
    """Run the research workflow with a streamed status line per node."""
    print("=" * 60)
    print("nodeflow Workflow Runner - Async Demo")
    print("=" * 60)

    runner = WorkflowRunner()

    workflow_file = Path(__file__).parent / "research.workflow.json"
    print(f"\n▶ Executing workflow: {workflow_file.name}")

    result = await runner.run_workflow_file(workflow_file, show, max_concurrency=2)

    print("\n" + "─" * 60)
    if result.success:
        print("✓ Success!")
        print(result.output.result("result").result)
    elif result.error is not None:
        print("✗ Error!")
        print(f"  {type(result.error).__name__}: {result.error}")
    else:
        print(f"✗ Failed nodes: {', '.join(result.output.failed_nodes)}")
    print("─" * 60)


def demo_sync():
    """Run the echo workflow synchronously."""
    print("\n\n" + "=" * 60)
    print("nodeflow Workflow Runner - Sync Demo")
    print("=" * 60)

    workflow_file = Path(__file__).parent / "echo.workflow.json"
    print(f"\n▶ Executing workflow: {workflow_file.name}")

    result = run_workflow_sync(workflow_file, show, inputs={"message": "hello from the demo"})

    print("\n" + "─" * 60)
    if result.success:
        print("✓ Success!")
        print(f"  Output: {result.output.result('result').result}")
    else:
        print("✗ Error!")
        print(f"  {result.error or result.output.failed_nodes}")
    print("─" * 60)


if __name__ == "__main__":
    print("\n🚀 Starting nodeflow Workflow Runner Demo\n")

    demo_sync()

    if "--research" in sys.argv:
        asyncio.run(demo_async())

    print("\n\n✨ Demo complete!\n")
