"""Routing of tool calls to the collector and the write policy gate."""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import ValidationError

from stackoverflow_mcp.collector.collector import SearchCollector
from stackoverflow_mcp.errors import InvalidInput, StackOverflowMCPError, UnknownTool
from stackoverflow_mcp.formatting import format_receipt, format_results
from stackoverflow_mcp.policy.write_gate import WritePolicyGate
from stackoverflow_mcp.tools.inputs import (
    TOOL_INPUTS,
    AnyToolInput,
    CommentSolutionInput,
    PostQuestionInput,
    PostSolutionInput,
    SearchByErrorInput,
    SearchByTagsInput,
    StackTraceInput,
    ThumbsUpInput,
)

logger = logging.getLogger(__name__)

ToolResult = Dict[str, Any]


def text_result(text: str) -> ToolResult:
    """Wrap rendered text as a single-block tool result."""
    return {"content": [{"type": "text", "text": text}]}


def _describe_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "arguments"
        problems.append(f"{location}: {item['msg']}")
    return "; ".join(problems)


class ToolDispatcher:
    """Validates tool arguments and invokes the matching handler."""

    def __init__(
        self,
        collector: SearchCollector,
        gate: WritePolicyGate,
        prometheus_exporter=None,
    ):
        self.collector = collector
        self.gate = gate
        self.prometheus_exporter = prometheus_exporter
        self._handlers: Dict[str, Callable[[Any], Awaitable[ToolResult]]] = {
            "search_by_error": self._search_by_error,
            "search_by_tags": self._search_by_tags,
            "analyze_stack_trace": self._analyze_stack_trace,
            "post_question": self._post_question,
            "post_solution": self._post_solution,
            "thumbs_up": self._thumbs_up,
            "comment_solution": self._comment_solution,
        }

    def parse(self, name: str, arguments: Optional[Dict[str, Any]]) -> AnyToolInput:
        """
        Validate raw arguments into the tool's input model.

        Raises:
            UnknownTool: If ``name`` is not a registered tool
            InvalidInput: If arguments are missing or malformed
        """
        model = TOOL_INPUTS.get(name)
        if model is None:
            raise UnknownTool(f"Unknown tool: {name}")
        if arguments is None:
            raise InvalidInput("Arguments are required")
        try:
            return model.model_validate(arguments)
        except ValidationError as e:
            raise InvalidInput(f"Invalid arguments for {name}: {_describe_validation_error(e)}") from e

    async def dispatch(self, name: str, arguments: Optional[Dict[str, Any]]) -> ToolResult:
        """
        Run one tool call to completion.

        Args:
            name: Tool name
            arguments: Raw arguments as received from the host

        Returns:
            Tool result with one text block
        """
        logger.info(f"Tool call: {name}")
        try:
            params = self.parse(name, arguments)
            result = await self._handlers[name](params)
        except StackOverflowMCPError as e:
            logger.warning(f"{name} failed with {type(e).__name__}: {e}")
            if self.prometheus_exporter:
                self.prometheus_exporter.record_tool_call(name, type(e).__name__)
            raise

        if self.prometheus_exporter:
            self.prometheus_exporter.record_tool_call(name, "ok")
        return result

    async def _search_by_error(self, params: SearchByErrorInput) -> ToolResult:
        results = await self.collector.search_by_error(
            params.error_message,
            language=params.language,
            technologies=params.technologies,
            min_score=params.min_score,
            limit=params.limit,
            include_comments=params.include_comments,
        )
        return text_result(format_results(results, params.response_format))

    async def _search_by_tags(self, params: SearchByTagsInput) -> ToolResult:
        results = await self.collector.search_by_tags(
            params.tags,
            min_score=params.min_score,
            limit=params.limit,
            include_comments=params.include_comments,
        )
        return text_result(format_results(results, params.response_format))

    async def _analyze_stack_trace(self, params: StackTraceInput) -> ToolResult:
        results = await self.collector.analyze_stack_trace(
            params.stack_trace,
            params.language,
            limit=params.limit,
            include_comments=params.include_comments,
        )
        return text_result(format_results(results, params.response_format))

    async def _post_question(self, params: PostQuestionInput) -> ToolResult:
        receipt = await self.gate.post_question(
            params.title,
            params.body,
            params.tags,
            params.error_signature,
            params.tried_approaches,
        )
        return text_result(format_receipt(receipt))

    async def _post_solution(self, params: PostSolutionInput) -> ToolResult:
        receipt = await self.gate.post_solution(
            params.question_id,
            params.body,
            params.confirmed_resolved,
            params.evidence,
        )
        return text_result(format_receipt(receipt))

    async def _thumbs_up(self, params: ThumbsUpInput) -> ToolResult:
        receipt = await self.gate.thumbs_up(params.post_id, params.confirmed_fixed)
        return text_result(format_receipt(receipt))

    async def _comment_solution(self, params: CommentSolutionInput) -> ToolResult:
        receipt = await self.gate.comment_solution(params.question_id, params.body)
        return text_result(format_receipt(receipt))
