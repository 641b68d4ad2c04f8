"""External-tool nodes.

No real call is made to the named integration: the completion service is asked
to describe or simulate the interaction, and its answer becomes the result.
Callers needing real integration calls register their own strategy for the
``external-tool`` kind.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from nodeflow.domain.models import ExternalToolConfig, Node, ResultEntry
from nodeflow.library.base import NodeStrategy
from nodeflow.registry import register_strategy

if TYPE_CHECKING:
    from nodeflow.execution.context import DispatchContext


def build_tool_prompt(config: ExternalToolConfig, upstream: str) -> str:
    settings = json.dumps(config.server_config, indent=2, ensure_ascii=False, sort_keys=True)
    return f"""You are an expert at working with external tool servers (Model Context Protocol).

## Server
- Name: {config.server_name}
- Type: {config.server_type}
- Configuration: {settings}

## Previous results
{upstream}

## Task
Use the server above to process the previous results.

Act according to the kind of integration:
- PostgreSQL or other databases: query or store data
- Notion or Google Drive: create or update documents
- Slack or Discord: simulate sending a message
- GitHub or Jira: simulate issue or pull request work

Describe the outcome of the operation in detail."""


@register_strategy("external-tool")
class ExternalToolStrategy(NodeStrategy):
    kind = "external-tool"

    async def execute(self, node: Node, config: ExternalToolConfig, ctx: DispatchContext) -> ResultEntry:
        ctx.report_progress(node.id, 10)
        ctx.log("info", f'Connecting to external tool "{config.server_name}" ({config.server_type})', node.id)

        ctx.report_progress(node.id, 50)
        text = await ctx.complete(None, build_tool_prompt(config, ctx.upstream(node.id)))

        return ResultEntry.ok(node.id, text)
