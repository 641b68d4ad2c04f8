"""Output nodes: combine upstream results and write the run summary."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from nodeflow.domain.models import Artifact, Node, OutputConfig, ResultEntry
from nodeflow.library.artifacts import write_markdown
from nodeflow.library.base import NodeStrategy
from nodeflow.registry import register_strategy

if TYPE_CHECKING:
    from nodeflow.execution.context import DispatchContext


def format_output(config: OutputConfig, combined: str) -> str:
    if config.output_type == "document":
        return f"# Document Output\n\n{combined}"
    return combined


def render_summary(content: str, files: list[Artifact], generated_at: datetime) -> str:
    manifest = "\n".join(f"- **{f.name}**: `{f.path}`" for f in files) or "None"
    return (
        "# Workflow Result\n\n"
        "## Generated content\n\n"
        f"{content}\n\n"
        "## Generated files\n"
        f"{manifest}\n\n"
        "---\n"
        f"Generated at: {generated_at.isoformat(timespec='seconds')}\n"
    )


@register_strategy("output")
class OutputStrategy(NodeStrategy):
    """Never calls the completion service.

    A failed summary write is logged and the combined text is still returned,
    so the run is not marked failed because of the summary file alone. Only a
    ``fileName`` that is not a plain file name fails the node, before anything
    is written.

    The manifest is a snapshot of the artifacts recorded when the node starts.
    Files from nodes ordered after it, or still running beside it when
    ``max_concurrency > 1``, are not listed. Make those nodes upstream of the
    output node to include them.
    """

    kind = "output"

    async def execute(self, node: Node, config: OutputConfig, ctx: DispatchContext) -> ResultEntry:
        ctx.log("info", "Collecting results and writing the summary", node.id)

        content = format_output(config, ctx.upstream(node.id))
        manifest = ctx.store.artifacts()
        summary = render_summary(content, manifest, datetime.now().astimezone())

        try:
            summary_file = write_markdown(ctx.output_dir, config.file_name, summary, name="Result summary")
        except OSError as e:
            ctx.log("warn", f"Could not save {config.file_name}: {e}", node.id)
            return ResultEntry.ok(node.id, content, manifest)

        return ResultEntry.ok(node.id, content, [summary_file, *manifest])
