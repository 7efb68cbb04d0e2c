"""Data models for Stack Overflow posts and aggregated search results."""

from typing import Dict, List, Optional, TypedDict


class QuestionRecord(TypedDict):
    """
    A question as fetched from the API. Immutable snapshot; never mutated locally.
    """
    question_id: int
    title: str
    body: str  # HTML, requested via the withbody filter
    score: int  # may be negative
    answer_count: int
    is_answered: bool
    accepted_answer_id: Optional[int]
    creation_date: int  # Unix timestamp
    tags: List[str]
    link: str


class AnswerRecord(TypedDict):
    """An answer belonging to one question."""
    answer_id: int
    question_id: int
    score: int
    is_accepted: bool
    body: str
    creation_date: int
    link: str


class CommentRecord(TypedDict):
    """A comment on a question or an answer."""
    comment_id: int
    post_id: int
    score: int
    body: str
    creation_date: int


class CommentsBundle(TypedDict):
    """
    Comments for one result: the question's own comments plus one entry
    per answer in the result, keyed by answer id (possibly empty lists).
    """
    question: List[CommentRecord]
    answers: Dict[int, List[CommentRecord]]


class _CompositeResultBase(TypedDict):
    question: QuestionRecord
    answers: List[AnswerRecord]  # score descending, as returned by the API


class CompositeResult(_CompositeResultBase, total=False):
    """A question with its answers and, when requested, its comments."""
    comments: CommentsBundle


class PostReceipt(TypedDict):
    """Acknowledgement for a created question, answer or comment."""
    id: int
    link: Optional[str]


class VoteReceipt(TypedDict):
    """Acknowledgement for an upvote."""
    post_id: int
    post_type: str
    upvoted: bool
