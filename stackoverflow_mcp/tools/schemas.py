"""Tool descriptors advertised to the MCP host."""

from typing import Any, Dict, List

from mcp.types import Tool

from stackoverflow_mcp.tools.inputs import TOOL_INPUTS

TOOL_DESCRIPTIONS: Dict[str, str] = {
    "search_by_error": "Search Stack Overflow for error-related questions",
    "search_by_tags": "Search Stack Overflow questions by tags",
    "analyze_stack_trace": "Analyze stack trace and find relevant solutions",
    "post_question": (
        "Ask a new Stack Overflow question. Only allowed after at least 3 distinct "
        "approaches were tried and no similar question exists"
    ),
    "post_solution": (
        "Answer an unanswered question with a solution confirmed to resolve the issue, "
        "backed by evidence"
    ),
    "thumbs_up": "Upvote a question or answer that was confirmed to fix the issue",
    "comment_solution": "Comment on a question that has no accepted answer yet",
}


def input_schema(name: str) -> Dict[str, Any]:
    """JSON Schema for a tool's arguments, using the camelCase wire names."""
    schema = TOOL_INPUTS[name].model_json_schema(by_alias=True)
    schema.pop("title", None)
    return schema


def list_tools() -> List[Tool]:
    """Descriptors for every registered tool, in registration order."""
    return [
        Tool(name=name, description=TOOL_DESCRIPTIONS[name], inputSchema=input_schema(name))
        for name in TOOL_INPUTS
    ]
