"""Tool specifications shared by the chat service and the examples."""

from __future__ import annotations

from .specs import (
    Parameters,
    PromptBuilder,
    PromptFuncDefinition,
    PromptFuncSpec,
    Property,
    ToolInvocationError,
    ToolNotFoundError,
    ToolRegistry,
    ToolResult,
    ToolSpecification,
    ToolsResult,
)

__all__ = [
    "Parameters",
    "PromptBuilder",
    "PromptFuncDefinition",
    "PromptFuncSpec",
    "Property",
    "ToolInvocationError",
    "ToolNotFoundError",
    "ToolRegistry",
    "ToolResult",
    "ToolSpecification",
    "ToolsResult",
]
