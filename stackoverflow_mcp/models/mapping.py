"""Mapping functions to convert Stack Exchange API items to our data models."""

import logging
from typing import Any, Dict, List, Optional

from stackoverflow_mcp.errors import TransportError
from stackoverflow_mcp.models.posts import (
    AnswerRecord,
    CommentRecord,
    CommentsBundle,
    CompositeResult,
    PostReceipt,
    QuestionRecord,
)

logger = logging.getLogger(__name__)


def _require(item: Dict[str, Any], key: str, kind: str) -> Any:
    if key not in item:
        raise TransportError(f"Malformed {kind} item from API: missing '{key}'")
    return item[key]


def question_from_item(item: Dict[str, Any]) -> QuestionRecord:
    """
    Convert a raw ``/questions`` or ``/search`` item to a QuestionRecord.

    Args:
        item: One element of the API response's ``items`` list

    Returns:
        A QuestionRecord with only the documented fields
    """
    record: QuestionRecord = {
        "question_id": int(_require(item, "question_id", "question")),
        "title": item.get("title", ""),
        "body": item.get("body", ""),
        "score": int(item.get("score", 0)),
        "answer_count": int(item.get("answer_count", 0)),
        "is_answered": bool(item.get("is_answered", False)),
        "accepted_answer_id": item.get("accepted_answer_id"),
        "creation_date": int(item.get("creation_date", 0)),
        "tags": list(item.get("tags", [])),
        "link": item.get("link", ""),
    }
    return record


def answer_from_item(item: Dict[str, Any]) -> AnswerRecord:
    """Convert a raw answer item to an AnswerRecord."""
    return {
        "answer_id": int(_require(item, "answer_id", "answer")),
        "question_id": int(item.get("question_id", 0)),
        "score": int(item.get("score", 0)),
        "is_accepted": bool(item.get("is_accepted", False)),
        "body": item.get("body", ""),
        "creation_date": int(item.get("creation_date", 0)),
        "link": item.get("link", ""),
    }


def comment_from_item(item: Dict[str, Any]) -> CommentRecord:
    """Convert a raw comment item to a CommentRecord."""
    return {
        "comment_id": int(_require(item, "comment_id", "comment")),
        "post_id": int(item.get("post_id", 0)),
        "score": int(item.get("score", 0)),
        "body": item.get("body", ""),
        "creation_date": int(item.get("creation_date", 0)),
    }


def receipt_from_item(item: Dict[str, Any], id_field: str) -> PostReceipt:
    """
    Build a PostReceipt from the item returned by a write route.

    Args:
        item: The created post
        id_field: Name of the id field ('question_id', 'answer_id', 'comment_id')
    """
    return {
        "id": int(_require(item, id_field, "post")),
        "link": item.get("link"),
    }


def compose_result(
    question: QuestionRecord,
    answers: List[AnswerRecord],
    comments: Optional[CommentsBundle] = None,
) -> CompositeResult:
    """
    Bundle a question with its answers and optional comments.

    Raises:
        ValueError: If the comments bundle does not cover exactly the given answers
    """
    result: CompositeResult = {"question": question, "answers": answers}
    if comments is not None:
        answer_ids = {answer["answer_id"] for answer in answers}
        if set(comments["answers"]) != answer_ids:
            raise ValueError(
                f"Comments bundle for question {question['question_id']} does not match its answers"
            )
        result["comments"] = comments
    return result


def items_to_records(items: List[Dict[str, Any]], converter) -> List[Any]:
    """
    Convert a list of raw API items with ``converter``.

    Args:
        items: Raw items from the API
        converter: One of the ``*_from_item`` functions

    Returns:
        List of converted records, in API order
    """
    return [converter(item) for item in items]
