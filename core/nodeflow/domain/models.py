"""Pydantic domain models for nodeflow workflows.

These models are the stable contract between the run submission boundary
(RPC, CLI, JSON workflow files), the execution core and the observer:
- Node / Edge: the user-assembled graph
- per-kind configuration payloads (input, agent, skill, external-tool, output)
- Artifact / ResultEntry: what a node produced
- RunRequest: one execution run

Wire payloads use camelCase keys (``nodeId``, ``workflowName``); Python code
may use either spelling when constructing models.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from nodeflow.domain.errors import NodeConfigurationError

if TYPE_CHECKING:
    from nodeflow.domain.graph import WorkflowGraph

NodeKind = Literal["input", "agent", "skill", "external-tool", "output"]
NodeStatus = Literal["idle", "pending", "running", "completed", "error"]
FailurePolicy = Literal["continue", "halt"]

# Kind names used by older workflow documents.
_KIND_ALIASES = {
    "subagent": "agent",
    "mcp": "external-tool",
    "external_tool": "external-tool",
}


class _WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class _NodeConfig(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


# ---------------------------------------------------------------------------
# Kind-specific configuration payloads
# ---------------------------------------------------------------------------


class InputConfig(_NodeConfig):
    """Configuration of an ``input`` node."""

    value: str | None = Field(default=None, description="Literal value used when no override is supplied")
    placeholder: str | None = Field(default=None, description="Hint shown in the editor")
    input_type: Literal["text", "file", "select", "multi"] = Field(default="text")
    options: list[str] = Field(default_factory=list, description="Choices for select inputs")


class AgentConfig(_NodeConfig):
    """Configuration of an ``agent`` node."""

    role: str = Field(default="custom", description="Role preset (researcher, writer, analyst, ...)")
    system_prompt: str | None = Field(default=None, description="Explicit system instructions")
    tools: list[str] = Field(default_factory=list, description="Tool allow-list advertised to the model")
    model: str | None = Field(default=None, description="Model tier (sonnet, opus, haiku) or a concrete model id")
    max_tokens: int | None = Field(default=None, gt=0, description="Token budget for the completion")


class SkillConfig(_NodeConfig):
    """Configuration of a ``skill`` node."""

    skill_id: str | None = Field(default=None, description="Built-in or custom skill identifier")
    instructions: str | None = Field(
        default=None,
        validation_alias=AliasChoices("instructions", "mdContent", "md_content"),
        description="Inline instruction text",
    )
    skill_type: Literal["official", "custom"] = Field(default="official")
    category: str | None = Field(
        default=None,
        validation_alias=AliasChoices("category", "skillCategory", "skill_category"),
    )


class ExternalToolConfig(_NodeConfig):
    """Configuration of an ``external-tool`` node."""

    server_name: str = Field(..., min_length=1, description="Name of the external integration")
    server_type: Literal["stdio", "sse", "http"] = Field(default="stdio")
    server_config: dict[str, Any] = Field(
        default_factory=dict,
        description="Declared integration settings (command, args, url, env)",
    )


class OutputConfig(_NodeConfig):
    """Configuration of an ``output`` node."""

    output_type: Literal["markdown", "document", "image", "webpage", "link", "auto"] = Field(default="auto")
    file_name: str = Field(default="result-summary.md", min_length=1, description="Summary file name")
    layout_type: str | None = Field(default=None)

    @field_validator("file_name")
    @classmethod
    def _bare_file_name(cls, value: str) -> str:
        # The summary is always written directly inside the run's output directory.
        if value in (".", "..") or "/" in value or "\\" in value:
            raise ValueError(f"must be a plain file name, got {value!r}")
        return value


KIND_CONFIG_MODELS: dict[str, type[_NodeConfig]] = {
    "input": InputConfig,
    "agent": AgentConfig,
    "skill": SkillConfig,
    "external-tool": ExternalToolConfig,
    "output": OutputConfig,
}


# ---------------------------------------------------------------------------
# Graph
# ---------------------------------------------------------------------------


class Node(_WireModel):
    """A unit of work in a workflow graph.

    ``status``, ``progress`` and ``error`` are presentation state. They are a
    projection of the run's result store (see ``ResultStore.project``) and are
    never read by the execution core.
    """

    id: str = Field(..., min_length=1, description="Unique identifier within a run")
    kind: NodeKind = Field(..., validation_alias=AliasChoices("kind", "type"), description="Node kind")
    label: str | None = Field(default=None, description="Optional display label")
    description: str | None = Field(default=None, description="Task description")
    config: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("config", "data"),
        description="Kind-specific configuration payload",
    )

    status: NodeStatus = Field(default="idle")
    progress: int | None = Field(default=None, ge=0, le=100)
    error: str | None = Field(default=None)

    @model_validator(mode="before")
    @classmethod
    def _lift_presentation_fields(cls, data: Any) -> Any:
        # Editor documents keep label/description inside the payload.
        if not isinstance(data, dict):
            return data
        payload = data.get("config", data.get("data"))
        if not isinstance(payload, dict):
            return data
        data = dict(data)
        for key in ("label", "description"):
            if data.get(key) is None and isinstance(payload.get(key), str):
                data[key] = payload[key]
        return data

    @field_validator("kind", mode="before")
    @classmethod
    def _normalize_kind(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _KIND_ALIASES.get(value, value)
        return value

    @property
    def display_name(self) -> str:
        return self.label or self.id

    def typed_config(self) -> _NodeConfig:
        """Parse the raw payload into this node's kind-specific model.

        Raises:
            NodeConfigurationError: If the payload does not fit the kind.
        """
        model = KIND_CONFIG_MODELS[self.kind]
        try:
            return model.model_validate(self.config)
        except ValidationError as exc:
            details = "; ".join(
                f"{'.'.join(str(part) for part in err['loc']) or 'config'}: {err['msg']}"
                for err in exc.errors(include_url=False)
            )
            raise NodeConfigurationError(
                f"Invalid {self.kind} configuration for node {self.id}: {details}"
            ) from exc


class Edge(_WireModel):
    """A directed edge: ``target`` consumes ``source``'s result."""

    source: str = Field(..., description="Source node id")
    target: str = Field(..., description="Target node id")
    id: str | None = Field(default=None, description="Optional edge id")


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class Artifact(_WireModel):
    """A file produced as a side effect of node execution."""

    path: str = Field(..., description="Absolute path of the file")
    type: str = Field(default="markdown", description="Logical type tag (markdown, image, ...)")
    name: str = Field(..., description="Display name")


class ResultEntry(_WireModel):
    """The recorded outcome of one node's execution."""

    node_id: str
    success: bool
    result: str | None = None
    files: tuple[Artifact, ...] = ()
    error: str | None = None

    @classmethod
    def ok(cls, node_id: str, result: str | None, files: tuple[Artifact, ...] | list[Artifact] = ()) -> ResultEntry:
        return cls(node_id=node_id, success=True, result=result, files=tuple(files))

    @classmethod
    def failure(cls, node_id: str, error: str) -> ResultEntry:
        return cls(node_id=node_id, success=False, error=error)


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------


class RunRequest(_WireModel):
    """One execution run as submitted by the surrounding application."""

    workflow_id: str = Field(default="workflow", min_length=1)
    workflow_name: str = Field(default="")
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    inputs: dict[str, str] = Field(
        default_factory=dict,
        description="Runtime values for input nodes, keyed by node id",
    )
    output_dir: str = Field(default="output", description="Directory receiving produced artifacts")

    failure_policy: FailurePolicy = Field(
        default="continue",
        description="'continue' records a failed node and moves on; 'halt' stops dispatching",
    )
    max_concurrency: int = Field(
        default=1,
        ge=1,
        description="1 walks the topological order; more runs independent branches concurrently",
    )
    timeout: float | None = Field(default=None, gt=0, description="Seconds allowed per completion call")

    @property
    def display_name(self) -> str:
        return self.workflow_name or self.workflow_id

    def graph(self) -> WorkflowGraph:
        """Build the validated graph for this run.

        Raises:
            GraphValidationError: On duplicate ids, self-loops or unknown edge
                endpoints.
        """
        from nodeflow.domain.graph import WorkflowGraph

        return WorkflowGraph(self.nodes, self.edges)
