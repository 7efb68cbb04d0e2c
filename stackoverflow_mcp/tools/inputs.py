"""Input models for the seven tools, one per known argument shape."""

from typing import Dict, List, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

from stackoverflow_mcp.formatting import ResponseFormat


class ToolInput(BaseModel):
    """Base for tool arguments; fields use the camelCase names seen on the wire."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class SearchOptions(ToolInput):
    """Options shared by the read tools."""

    include_comments: bool = Field(
        default=False, alias="includeComments", description="Include comments in results"
    )
    response_format: ResponseFormat = Field(
        default=ResponseFormat.STRUCTURED, alias="responseFormat", description="Response format"
    )
    limit: Optional[int] = Field(
        default=None, ge=1, le=100, description="Maximum number of results"
    )


class SearchByErrorInput(SearchOptions):
    error_message: str = Field(
        alias="errorMessage", min_length=1, description="Error message to search for"
    )
    language: Optional[str] = Field(default=None, description="Programming language")
    technologies: Optional[List[str]] = Field(default=None, description="Related technologies")
    min_score: Optional[int] = Field(
        default=None, alias="minScore", description="Minimum score threshold"
    )


class SearchByTagsInput(SearchOptions):
    tags: List[str] = Field(min_length=1, description="Tags to search for")
    min_score: Optional[int] = Field(
        default=None, alias="minScore", description="Minimum score threshold"
    )


class StackTraceInput(SearchOptions):
    stack_trace: str = Field(
        alias="stackTrace", min_length=1, description="Stack trace to analyze"
    )
    language: str = Field(min_length=1, description="Programming language")


class PostQuestionInput(ToolInput):
    title: str = Field(min_length=1, description="Question title")
    body: str = Field(min_length=1, description="Question body (Markdown)")
    tags: List[str] = Field(min_length=1, description="Tags for the question")
    error_signature: str = Field(
        alias="errorSignature",
        min_length=1,
        description="Succinct error summary used to check for duplicates",
    )
    tried_approaches: List[str] = Field(
        alias="triedApproaches",
        description="Fixes already attempted; at least 3 distinct approaches",
    )


class PostSolutionInput(ToolInput):
    question_id: int = Field(alias="questionId", gt=0, description="Question to answer")
    body: str = Field(min_length=1, description="Answer body (Markdown)")
    confirmed_resolved: StrictBool = Field(
        alias="confirmedResolved", description="True only if the solution fixed the issue"
    )
    evidence: List[str] = Field(
        description="References: test results, logs, reproduction steps, links"
    )


class ThumbsUpInput(ToolInput):
    post_id: int = Field(alias="postId", gt=0, description="Question or answer id")
    confirmed_fixed: StrictBool = Field(
        alias="confirmedFixed", description="Only proceed if the post fixed the issue"
    )


class CommentSolutionInput(ToolInput):
    question_id: int = Field(alias="questionId", gt=0, description="Question to comment on")
    body: str = Field(min_length=1, description="Constructive comment with context")

    @field_validator("body")
    @classmethod
    def body_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("body must not be blank")
        return value


AnyToolInput = Union[
    SearchByErrorInput,
    SearchByTagsInput,
    StackTraceInput,
    PostQuestionInput,
    PostSolutionInput,
    ThumbsUpInput,
    CommentSolutionInput,
]

TOOL_INPUTS: Dict[str, Type[ToolInput]] = {
    "search_by_error": SearchByErrorInput,
    "search_by_tags": SearchByTagsInput,
    "analyze_stack_trace": StackTraceInput,
    "post_question": PostQuestionInput,
    "post_solution": PostSolutionInput,
    "thumbs_up": ThumbsUpInput,
    "comment_solution": CommentSolutionInput,
}
