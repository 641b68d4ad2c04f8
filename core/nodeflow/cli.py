"""nodeflow CLI - Command line interface for running workflows.

Usage:
    nodeflow run <workflow_file> [--input id=value]... [--output-dir DIR]
                 [--concurrency N] [--halt-on-failure] [--timeout S]
    nodeflow order <workflow_file>
    nodeflow --version
    nodeflow --help

Examples:
    nodeflow run examples/research.workflow.json
    nodeflow run examples/research.workflow.json --input topic="Green tea"
    nodeflow run workflow.json --concurrency 4 --halt-on-failure
    nodeflow order examples/research.workflow.json
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from nodeflow import __version__
from nodeflow.domain.errors import GraphValidationError
from nodeflow.execution.events import Event, LogEvent, NodeUpdate
from nodeflow.execution.ordering import topological_order
from nodeflow.runner import WorkflowRunner, load_workflow

_STATUS_MARKS = {
    "pending": "·",
    "running": "▶",
    "completed": "✓",
    "error": "✗",
}


def parse_inputs(values: list[str] | None) -> dict[str, str]:
    """Parse ``id=value`` pairs into a runtime input map.

    Raises:
        ValueError: If a pair has no ``=``.
    """
    inputs: dict[str, str] = {}
    for item in values or []:
        if "=" not in item:
            raise ValueError(f"Invalid input format: {item}")
        node_id, value = item.split("=", 1)
        inputs[node_id.strip()] = value
    return inputs


def print_event(event: Event) -> None:
    """Human-readable rendering of run events."""
    if isinstance(event, NodeUpdate):
        # Progress ticks are noise on a terminal.
        if event.status == "running" and event.progress:
            return
        line = f"  {_STATUS_MARKS.get(event.status, '?')} {event.node_id}: {event.status}"
        if event.error:
            line += f" ({event.error})"
        print(line)
    elif isinstance(event, LogEvent):
        if event.level == "debug":
            return
        prefix = f"[{event.node_id}] " if event.node_id else ""
        print(f"  {event.level.upper():5} {prefix}{event.message}")


def cmd_run(args: argparse.Namespace) -> int:
    """Run a workflow document.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 when every node succeeded, 1 otherwise)
    """
    workflow_file = Path(args.file)

    if not workflow_file.exists():
        print(f"Error: File not found: {workflow_file}", file=sys.stderr)
        return 1

    try:
        inputs = parse_inputs(args.input)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Use: --input node_id=value", file=sys.stderr)
        return 1

    print(f"▶ Executing: {workflow_file}")
    if inputs:
        for node_id, value in inputs.items():
            print(f"  Input {node_id}: {value}")
    print()

    async def run():
        runner = WorkflowRunner()
        return await runner.run_workflow_file(
            workflow_file,
            print_event,
            inputs=inputs or None,
            output_dir=args.output_dir,
            max_concurrency=args.concurrency,
            failure_policy="halt" if args.halt_on_failure else None,
            timeout=args.timeout,
        )

    try:
        result = asyncio.run(run())
    except ValueError as e:
        # Settings that cannot be resolved (e.g. proxy mode without a URL)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print("─" * 70)
    if result.error is not None:
        print("✗ Error!")
        print()
        print(f"{type(result.error).__name__}: {result.error}")
        print("─" * 70)
        return 1

    outcome = result.output
    if outcome.error is not None:
        print("✗ Invalid workflow!")
        print()
        print(outcome.error)
    elif outcome.cancelled:
        print("✗ Cancelled")
    elif outcome.success:
        print("✓ Success!")
    else:
        print(f"✗ Failed nodes: {', '.join(outcome.failed_nodes)}")

    for entry in outcome.store:
        print()
        print(f"[{entry.node_id}] {'ok' if entry.success else 'error'}")
        if entry.success:
            print(entry.result or "")
        else:
            print(entry.error)
        for artifact in entry.files:
            print(f"  file: {artifact.name} -> {artifact.path}")

    print("─" * 70)
    return 0 if result.success else 1


def cmd_order(args: argparse.Namespace) -> int:
    """Print the execution order of a workflow document.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 for success, 1 for error)
    """
    workflow_file = Path(args.file)

    if not workflow_file.exists():
        print(f"Error: File not found: {workflow_file}", file=sys.stderr)
        return 1

    try:
        request = load_workflow(workflow_file)
        order = topological_order(request.graph())
    except GraphValidationError as e:
        print(f"Invalid workflow: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error loading file: {e}", file=sys.stderr)
        return 1

    print(f"Workflow: {request.display_name}")
    print()
    for position, node in enumerate(order, start=1):
        label = f" ({node.label})" if node.label else ""
        print(f"  {position}. {node.id} [{node.kind}]{label}")

    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        prog="nodeflow",
        description="nodeflow - Visual AI workflow execution core",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  nodeflow run examples/research.workflow.json
  nodeflow run workflow.json --input topic="Green tea" --output-dir out
  nodeflow order examples/research.workflow.json
        """
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"nodeflow {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Run command
    run_parser = subparsers.add_parser(
        "run",
        help="Run a workflow from a JSON document"
    )
    run_parser.add_argument(
        "file",
        help="Path to the workflow JSON document"
    )
    run_parser.add_argument(
        "--input",
        action="append",
        help="Runtime value for an input node in node_id=value format (can be used multiple times)"
    )
    run_parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory receiving produced files (default: the document's outputDir)"
    )
    run_parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Maximum number of nodes running at once (default: 1, sequential)"
    )
    run_parser.add_argument(
        "--halt-on-failure",
        action="store_true",
        help="Stop dispatching nodes after the first failure"
    )
    run_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds allowed per completion call"
    )

    # Order command
    order_parser = subparsers.add_parser(
        "order",
        help="Print the execution order of a workflow"
    )
    order_parser.add_argument(
        "file",
        help="Path to the workflow JSON document"
    )

    args = parser.parse_args(argv)

    if args.command == "run":
        return cmd_run(args)
    elif args.command == "order":
        return cmd_order(args)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
