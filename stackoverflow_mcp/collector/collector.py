"""Aggregation of questions, answers and comments into composite results."""

import logging
from typing import Dict, List, Optional

from stackoverflow_mcp.models.mapping import compose_result
from stackoverflow_mcp.models.posts import CommentRecord, CommentsBundle, CompositeResult
from stackoverflow_mcp.stackexchange_client import StackExchangeClient

logger = logging.getLogger(__name__)


class SearchCollector:
    """
    Collector that turns a search into fully composed results.

    For each matching question it fetches the answers and, on request, the
    comments on the question and on every answer. Fetches are sequential and
    all go through the client's shared throttled invoker.
    """

    def __init__(self, client: StackExchangeClient):
        """
        Initialize the collector.

        Args:
            client: Stack Exchange client used for every fetch
        """
        self.client = client

    async def search_and_compose(
        self,
        query: str,
        tags: Optional[List[str]] = None,
        min_score: Optional[int] = None,
        limit: Optional[int] = None,
        include_comments: bool = False,
    ) -> List[CompositeResult]:
        """
        Search and compose a result for every question that passes the filter.

        Args:
            query: Free-text query
            tags: Tags every question must carry
            min_score: Skip questions scoring below this (the search route has no score filter)
            limit: Page size passed to the search
            include_comments: Also fetch question and answer comments

        Returns:
            Composite results in the order the search returned the questions
        """
        questions = await self.client.search(query, tags=tags, page_size=limit)
        logger.info(f"Search for {query!r} (tags={tags}) returned {len(questions)} questions")

        results: List[CompositeResult] = []
        for question in questions:
            if min_score is not None and question["score"] < min_score:
                logger.debug(
                    f"Skipping question {question['question_id']} "
                    f"(score {question['score']} < {min_score})"
                )
                continue

            answers = await self.client.fetch_answers(question["question_id"])

            comments: Optional[CommentsBundle] = None
            if include_comments:
                answer_comments: Dict[int, List[CommentRecord]] = {}
                question_comments = await self.client.fetch_comments(question["question_id"])
                for answer in answers:
                    answer_comments[answer["answer_id"]] = await self.client.fetch_comments(
                        answer["answer_id"]
                    )
                comments = {"question": question_comments, "answers": answer_comments}

            results.append(compose_result(question, answers, comments))

        return results

    async def search_by_error(
        self,
        error_message: str,
        language: Optional[str] = None,
        technologies: Optional[List[str]] = None,
        min_score: Optional[int] = None,
        limit: Optional[int] = None,
        include_comments: bool = False,
    ) -> List[CompositeResult]:
        """Search for an error message, tagged with the language and technologies."""
        tags = []
        if language:
            tags.append(language.lower())
        tags.extend(technologies or [])

        return await self.search_and_compose(
            error_message,
            tags=tags or None,
            min_score=min_score,
            limit=limit,
            include_comments=include_comments,
        )

    async def search_by_tags(
        self,
        tags: List[str],
        min_score: Optional[int] = None,
        limit: Optional[int] = None,
        include_comments: bool = False,
    ) -> List[CompositeResult]:
        """Browse the top-voted questions carrying all of ``tags``."""
        return await self.search_and_compose(
            "",
            tags=tags,
            min_score=min_score,
            limit=limit,
            include_comments=include_comments,
        )

    async def analyze_stack_trace(
        self,
        stack_trace: str,
        language: str,
        limit: Optional[int] = None,
        include_comments: bool = False,
    ) -> List[CompositeResult]:
        """
        Search using the headline of a stack trace.

        The first non-blank line of a trace usually carries the exception
        type and message, which is what the search matches best.
        """
        return await self.search_and_compose(
            extract_error_line(stack_trace),
            tags=[language.lower()],
            limit=limit,
            include_comments=include_comments,
        )


def extract_error_line(stack_trace: str) -> str:
    """Return the first non-blank line of a stack trace, stripped."""
    for line in stack_trace.splitlines():
        if line.strip():
            return line.strip()
    return ""
