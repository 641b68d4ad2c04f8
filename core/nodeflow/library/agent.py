"""Agent nodes: one completion call with a role preamble and upstream context."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from nodeflow.domain.models import AgentConfig, Node, ResultEntry
from nodeflow.library.base import NodeStrategy
from nodeflow.registry import register_strategy

if TYPE_CHECKING:
    from nodeflow.execution.context import DispatchContext

ROLE_PROMPTS: dict[str, str] = {
    "researcher": (
        "You are an expert researcher. Gather, analyze and synthesize information on the given topic. "
        "Provide comprehensive, well-structured findings with citations where applicable."
    ),
    "writer": (
        "You are a professional writer. Create clear, engaging and well-structured content "
        "in the tone and style the request calls for."
    ),
    "analyst": (
        "You are a data analyst. Analyze the information, identify patterns and present "
        "actionable insights in a clear format."
    ),
    "coder": (
        "You are an expert software developer. Write clean, efficient and well-documented code, "
        "following best practices and considering edge cases."
    ),
    "designer": (
        "You are a design expert. Propose design guides and concepts for detail pages, "
        "banners and user interfaces."
    ),
    "custom": "You are a helpful AI assistant. Complete the assigned task to the best of your ability.",
}

DEFAULT_TASK = "Please complete the assigned task."
NO_PREVIOUS_RESULTS = "(none)"


def build_system_prompt(config: AgentConfig) -> str:
    """Explicit instructions win over the role preset; tools are appended."""
    prompt = config.system_prompt or ROLE_PROMPTS.get(config.role, ROLE_PROMPTS["custom"])
    if config.tools:
        prompt += f"\n\nYou have access to the following tools: {', '.join(config.tools)}"
    return prompt


def build_user_message(node: Node, upstream: str) -> str:
    return (
        f"## Task\n{node.description or DEFAULT_TASK}\n\n"
        f"## Previous results\n{upstream or NO_PREVIOUS_RESULTS}\n\n"
        "Complete the task using the content above and provide the result."
    )


@register_strategy("agent")
class AgentStrategy(NodeStrategy):
    kind = "agent"

    async def execute(self, node: Node, config: AgentConfig, ctx: DispatchContext) -> ResultEntry:
        ctx.report_progress(node.id, 20)

        system_prompt = build_system_prompt(config)
        message = build_user_message(node, ctx.upstream(node.id))

        ctx.log("debug", f'Agent "{node.display_name}" ({config.role}) calling completion service', node.id)
        sys.stderr.write(f"[AGENT] {node.id}: role={config.role}, tools={config.tools}\n")
        sys.stderr.flush()

        ctx.report_progress(node.id, 40)
        text = await ctx.complete(system_prompt, message, model=config.model, max_tokens=config.max_tokens)
        ctx.report_progress(node.id, 80)

        return ResultEntry.ok(node.id, text)
