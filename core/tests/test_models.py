"""Tests for the workflow domain models.

These tests verify:
- Wire (camelCase) and Python (snake_case) spellings are both accepted
- Legacy node kind names are normalized
- Editor payloads carrying label/description are lifted onto the node
- Kind-specific configuration parsing and its errors
- Run request options and their bounds
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from nodeflow.domain.errors import GraphValidationError, NodeConfigurationError
from nodeflow.domain.models import (
    AgentConfig,
    ExternalToolConfig,
    Node,
    OutputConfig,
    ResultEntry,
    RunRequest,
    SkillConfig,
)


class TestNode:
    def test_legacy_kind_names(self):
        assert Node.model_validate({"id": "a", "type": "subagent"}).kind == "agent"
        assert Node.model_validate({"id": "m", "type": "mcp"}).kind == "external-tool"
        assert Node(id="x", kind="external_tool").kind == "external-tool"

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            Node(id="x", kind="teleporter")

    def test_editor_payload_lifts_label_and_description(self):
        node = Node.model_validate(
            {
                "id": "a1",
                "type": "agent",
                "data": {"label": "Researcher", "description": "Find sources", "role": "researcher"},
            }
        )
        assert node.label == "Researcher"
        assert node.description == "Find sources"
        assert node.display_name == "Researcher"
        assert node.config["role"] == "researcher"

    def test_display_name_falls_back_to_id(self):
        assert Node(id="a1", kind="agent").display_name == "a1"

    def test_nodes_are_immutable(self):
        node = Node(id="a1", kind="agent")
        with pytest.raises(ValidationError):
            node.label = "changed"


class TestTypedConfig:
    def test_agent_config_from_camel_case(self):
        node = Node(
            id="a1",
            kind="agent",
            config={"role": "writer", "systemPrompt": "Be brief", "maxTokens": 200, "tools": ["web"]},
        )
        config = node.typed_config()
        assert isinstance(config, AgentConfig)
        assert config.system_prompt == "Be brief"
        assert config.max_tokens == 200
        assert config.tools == ["web"]

    def test_skill_instruction_aliases(self):
        config = Node(id="s1", kind="skill", config={"skillId": "x", "mdContent": "Do it"}).typed_config()
        assert isinstance(config, SkillConfig)
        assert config.instructions == "Do it"

    def test_output_defaults(self):
        config = Node(id="o1", kind="output").typed_config()
        assert isinstance(config, OutputConfig)
        assert config.output_type == "auto"
        assert config.file_name == "result-summary.md"

    @pytest.mark.parametrize("file_name", ["../escaped.md", "/tmp/summary.md", "sub/summary.md", "..\\x.md", ".."])
    def test_output_file_name_must_be_plain(self, file_name):
        node = Node(id="o1", kind="output", config={"fileName": file_name})
        with pytest.raises(NodeConfigurationError, match="o1.*plain file name"):
            node.typed_config()

    def test_external_tool_requires_server_name(self):
        node = Node(id="t1", kind="external-tool", config={"serverType": "http"})
        with pytest.raises(NodeConfigurationError, match="t1.*server_name|serverName"):
            node.typed_config()

    def test_external_tool_config(self):
        node = Node(
            id="t1",
            kind="external-tool",
            config={"serverName": "notion", "serverType": "sse", "serverConfig": {"url": "http://x"}},
        )
        config = node.typed_config()
        assert isinstance(config, ExternalToolConfig)
        assert config.server_config == {"url": "http://x"}

    def test_invalid_token_budget(self):
        node = Node(id="a1", kind="agent", config={"maxTokens": 0})
        with pytest.raises(NodeConfigurationError):
            node.typed_config()

    def test_unknown_payload_keys_are_kept(self):
        config = Node(id="i1", kind="input", config={"value": "v", "color": "red"}).typed_config()
        assert config.value == "v"
        assert config.model_extra == {"color": "red"}


class TestResultEntry:
    def test_ok(self):
        entry = ResultEntry.ok("a", "text")
        assert entry.success is True
        assert entry.files == ()
        assert entry.error is None

    def test_failure(self):
        entry = ResultEntry.failure("a", "boom")
        assert entry.success is False
        assert entry.result is None
        assert entry.error == "boom"


class TestRunRequest:
    def test_wire_document(self):
        request = RunRequest.model_validate(
            {
                "workflowId": "wf",
                "workflowName": "Research",
                "nodes": [{"id": "i1", "type": "input"}],
                "edges": [],
                "outputDir": "/tmp/out",
                "failurePolicy": "halt",
                "maxConcurrency": 3,
            }
        )
        assert request.workflow_name == "Research"
        assert request.output_dir == "/tmp/out"
        assert request.failure_policy == "halt"
        assert request.max_concurrency == 3
        assert request.display_name == "Research"

    def test_defaults(self):
        request = RunRequest()
        assert request.failure_policy == "continue"
        assert request.max_concurrency == 1
        assert request.timeout is None
        assert request.display_name == "workflow"

    @pytest.mark.parametrize("field,value", [("maxConcurrency", 0), ("timeout", 0), ("failurePolicy", "retry")])
    def test_invalid_options(self, field, value):
        with pytest.raises(ValidationError):
            RunRequest.model_validate({field: value})

    def test_graph_validation(self):
        request = RunRequest.model_validate(
            {"nodes": [{"id": "a", "kind": "input"}, {"id": "a", "kind": "output"}]}
        )
        with pytest.raises(GraphValidationError):
            request.graph()
