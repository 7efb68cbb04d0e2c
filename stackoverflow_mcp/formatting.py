"""Rendering of composite results as JSON or Markdown."""

import json
from enum import Enum
from typing import Any, Dict, List, Union

from stackoverflow_mcp.models.posts import CompositeResult, PostReceipt, VoteReceipt


class ResponseFormat(str, Enum):
    """Output modes understood by the formatter."""

    STRUCTURED = "json"
    DOCUMENT = "markdown"


def format_results(
    results: List[CompositeResult],
    mode: Union[ResponseFormat, str] = ResponseFormat.STRUCTURED,
) -> str:
    """
    Render a sequence of composite results.

    Args:
        results: Results in display order
        mode: ResponseFormat or its value ('json' / 'markdown')

    Returns:
        JSON text (``[]`` when empty) or a Markdown document (empty string when empty)
    """
    mode = ResponseFormat(mode)
    if mode is ResponseFormat.STRUCTURED:
        return json.dumps(results, indent=2, ensure_ascii=False)
    return "\n\n".join(_result_to_markdown(result) for result in results)


def parse_structured(text: str) -> List[CompositeResult]:
    """
    Read back the output of structured mode.

    JSON object keys are strings, so answer-id keys of the comments
    mapping are turned back into ints.
    """
    results = json.loads(text)
    for result in results:
        comments = result.get("comments")
        if comments is not None:
            comments["answers"] = {
                int(answer_id): items for answer_id, items in comments["answers"].items()
            }
    return results


def _comment_lines(comments: List[Dict[str, Any]]) -> str:
    return "".join(f"- {comment['body']} *(Score: {comment['score']})*\n" for comment in comments)


def _result_to_markdown(result: CompositeResult) -> str:
    question = result["question"]
    comments = result.get("comments")

    markdown = f"# {question['title']}\n\n"
    markdown += f"**Score:** {question['score']} | **Answers:** {question['answer_count']}\n\n"
    markdown += f"## Question\n\n{question['body']}\n\n"

    if comments and comments["question"]:
        markdown += "### Question Comments\n\n"
        markdown += _comment_lines(comments["question"])
        markdown += "\n"

    markdown += "## Answers\n\n"
    for answer in result["answers"]:
        marker = "✓ " if answer["is_accepted"] else ""
        markdown += f"### {marker}Answer (Score: {answer['score']})\n\n"
        markdown += f"{answer['body']}\n\n"

        answer_comments = comments["answers"].get(answer["answer_id"]) if comments else None
        if answer_comments:
            markdown += "#### Answer Comments\n\n"
            markdown += _comment_lines(answer_comments)
            markdown += "\n"

    markdown += f"---\n\n[View on Stack Overflow]({question['link']})\n\n"
    return markdown


def format_receipt(receipt: Union[PostReceipt, VoteReceipt]) -> str:
    """Render a write acknowledgement as JSON text."""
    return json.dumps(receipt, indent=2)
