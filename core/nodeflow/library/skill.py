"""Skill nodes.

Built-in skills follow a two-step flow: the completion service expands the
upstream result into a structured description, which is then persisted as a
markdown artifact in the run's output directory. Any other skill id is run
generically: the response becomes the result and no file is written.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from nodeflow.domain.models import Node, ResultEntry, SkillConfig
from nodeflow.library.artifacts import write_markdown
from nodeflow.library.base import NodeStrategy
from nodeflow.registry import get_skill, has_skill, register_skill, register_strategy

if TYPE_CHECKING:
    from nodeflow.execution.context import DispatchContext


@dataclass(frozen=True, slots=True)
class BuiltinSkill:
    """A specialized skill producing a markdown artifact.

    Attributes:
        skill_id: Primary identifier.
        title: Heading written at the top of the artifact.
        file_name: Artifact file name inside the output directory.
        artifact_name: Display name reported to the observer.
        template: Prompt template; ``{request}`` receives the upstream text.
    """

    skill_id: str
    title: str
    file_name: str
    artifact_name: str
    template: str

    def build_prompt(self, request: str) -> str:
        return self.template.format(request=request)


IMAGE_PROMPT_SET = register_skill(
    BuiltinSkill(
        skill_id="image-gen-nanobanana",
        title="Detail Page Image Set Prompts",
        file_name="image-prompts.md",
        artifact_name="Image prompts",
        template="""You are an expert in planning product detail page imagery.

## Request
{request}

## Task
Plan the set of images the detail page needs, based on the request above.

Write a detailed prompt for each image using this format:

### 1. Main banner (1920x600)
- Purpose: [purpose of the image]
- Prompt: [detailed image generation prompt, in English]
- Style: [style keywords]

### 2. Main product shot (800x800)
- Purpose: [purpose of the image]
- Prompt: [detailed image generation prompt, in English]
- Style: [style keywords]

### 3. Lifestyle image (1200x800)
- Purpose: [purpose of the image]
- Prompt: [detailed image generation prompt, in English]
- Style: [style keywords]

### 4. Feature images (600x400) x 3
- One prompt per image

Write every prompt in English and describe it concretely and visually.""",
    ),
    "image-gen",
)

SLIDE_OUTLINE = register_skill(
    BuiltinSkill(
        skill_id="ppt-generator",
        title="Presentation Slides",
        file_name="presentation.md",
        artifact_name="Slide outline",
        template="""You are a presentation expert.

## Request
{request}

## Task
Based on the content above, write the structure of a professional slide deck.

Use this format for every slide:

### Slide 1: [title]
- Main text: [key message]
- Sub text: [supporting explanation]
- Visual guide: [recommended image or graphic]
- Speaker notes: [notes for the presenter]

Produce 10-15 slides in total.""",
    ),
    "pptx",
)


def build_generic_prompt(node: Node, config: SkillConfig, upstream: str) -> str:
    return (
        f"Skill: {node.display_name}\n"
        f"Description: {node.description or ''}\n\n"
        f"## Previous results\n{upstream}\n\n"
        f"## Skill instructions\n{config.instructions or 'Please complete the assigned task.'}\n\n"
        "Complete the task using the content above and provide the result."
    )


@register_strategy("skill")
class SkillStrategy(NodeStrategy):
    kind = "skill"

    async def execute(self, node: Node, config: SkillConfig, ctx: DispatchContext) -> ResultEntry:
        ctx.report_progress(node.id, 10)
        ctx.log("info", f'Running skill "{config.skill_id or node.display_name}"', node.id)

        upstream = ctx.upstream(node.id)
        if has_skill(config.skill_id):
            return await self._execute_builtin(node, get_skill(config.skill_id), upstream, ctx)

        ctx.report_progress(node.id, 50)
        text = await ctx.complete(None, build_generic_prompt(node, config, upstream))
        return ResultEntry.ok(node.id, text)

    async def _execute_builtin(
        self,
        node: Node,
        skill: BuiltinSkill,
        upstream: str,
        ctx: DispatchContext,
    ) -> ResultEntry:
        ctx.report_progress(node.id, 20)
        text = await ctx.complete(None, skill.build_prompt(upstream))
        ctx.report_progress(node.id, 50)

        try:
            artifact = write_markdown(
                ctx.output_dir,
                skill.file_name,
                f"# {skill.title}\n\n{text}",
                name=skill.artifact_name,
            )
        except OSError as e:
            ctx.log("warn", f"Could not save {skill.file_name}: {e}", node.id)
            return ResultEntry.ok(node.id, text)

        return ResultEntry.ok(node.id, text, [artifact])
