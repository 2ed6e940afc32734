"""Declarative tool specifications handed to tool-calling models."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

LOGGER = logging.getLogger(__name__)

ToolFunction = Callable[[Mapping[str, Any]], Any]


class ToolInvocationError(RuntimeError):
    """Raised when a registered tool fails while handling a model request."""


class ToolNotFoundError(ToolInvocationError):
    """Raised when the model asks for a tool that was never registered."""


@dataclass(slots=True)
class Property:
    type: str
    description: str
    required: bool = False
    enum_values: list[str] | None = None

    def to_payload(self) -> dict[str, Any]:
        # ``required`` travels in the enclosing Parameters block.
        payload: dict[str, Any] = {"type": self.type, "description": self.description}
        if self.enum_values is not None:
            payload["enum"] = list(self.enum_values)
        return payload


@dataclass(slots=True)
class Parameters:
    properties: dict[str, Property]
    required: list[str] = field(default_factory=list)
    type: str = "object"

    def to_payload(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "properties": {name: prop.to_payload() for name, prop in self.properties.items()},
            "required": list(self.required),
        }


@dataclass(slots=True)
class PromptFuncSpec:
    name: str
    description: str
    parameters: Parameters

    def to_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters.to_payload(),
        }


@dataclass(slots=True)
class PromptFuncDefinition:
    function: PromptFuncSpec
    type: str = "function"

    def to_payload(self) -> dict[str, Any]:
        return {"type": self.type, "function": self.function.to_payload()}


@dataclass(slots=True)
class ToolSpecification:
    function_name: str
    function_description: str
    tool_function: ToolFunction
    tool_prompt: PromptFuncDefinition

    @property
    def prompt_name(self) -> str:
        return self.tool_prompt.function.name


class PromptBuilder:
    """Render the raw tool-calling prompt understood by Mistral-style models."""

    def __init__(self) -> None:
        self._tools: list[PromptFuncDefinition] = []
        self._prompt = ""

    def with_tool_specification(self, spec: ToolSpecification) -> "PromptBuilder":
        self._tools.append(spec.tool_prompt)
        return self

    def with_prompt(self, prompt: str) -> "PromptBuilder":
        self._prompt = prompt
        return self

    def build(self) -> str:
        tools_json = json.dumps([tool.to_payload() for tool in self._tools], ensure_ascii=False)
        return f"[AVAILABLE_TOOLS] {tools_json}[/AVAILABLE_TOOLS][INST] {self._prompt} [/INST]"


class ToolRegistry:
    """Map tool names to the callables that service them."""

    def __init__(self) -> None:
        self._functions: dict[str, ToolFunction] = {}

    def add(self, spec: ToolSpecification) -> None:
        self._functions[spec.function_name] = spec.tool_function
        # Models answer with the prompt function name, not the registry name.
        self._functions[spec.prompt_name] = spec.tool_function
        LOGGER.debug("registered tool %s (prompt name %s)", spec.function_name, spec.prompt_name)

    def get(self, name: str) -> ToolFunction | None:
        return self._functions.get(name)

    def names(self) -> list[str]:
        return sorted(self._functions)

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    def __len__(self) -> int:
        return len(self._functions)


@dataclass(slots=True)
class ToolCall:
    name: str
    arguments: dict[str, Any]


@dataclass(slots=True)
class ToolResult:
    function_name: str
    function_arguments: dict[str, Any]
    result: Any


@dataclass(slots=True)
class ToolsResult:
    model_result: Any
    tool_results: list[ToolResult] = field(default_factory=list)


def parse_tool_calls(text: str) -> list[ToolCall]:
    """Decode the JSON list of calls a model emits after ``[TOOL_CALLS]``."""

    cleaned = (text or "").replace("[TOOL_CALLS]", "").strip()
    if not cleaned:
        return []
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ValueError(f"model did not return tool calls as JSON: {cleaned[:120]!r}") from exc
    if isinstance(payload, Mapping):
        payload = [payload]
    if not isinstance(payload, list):
        raise ValueError("tool call payload must be a JSON list")
    calls: list[ToolCall] = []
    for entry in payload:
        if not isinstance(entry, Mapping):
            continue
        name = entry.get("name")
        if not isinstance(name, str) or not name.strip():
            continue
        arguments = entry.get("arguments")
        calls.append(
            ToolCall(
                name=name.strip(),
                arguments=dict(arguments) if isinstance(arguments, Mapping) else {},
            )
        )
    return calls


__all__ = [
    "Parameters",
    "PromptBuilder",
    "PromptFuncDefinition",
    "PromptFuncSpec",
    "Property",
    "ToolCall",
    "ToolFunction",
    "ToolInvocationError",
    "ToolNotFoundError",
    "ToolRegistry",
    "ToolResult",
    "ToolSpecification",
    "ToolsResult",
    "parse_tool_calls",
]
