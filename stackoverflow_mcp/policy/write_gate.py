"""Precondition checks guarding every write against Stack Overflow."""

import logging
from typing import List, Optional

from stackoverflow_mcp.config import Credentials
from stackoverflow_mcp.errors import ConfigurationError, PolicyRejected
from stackoverflow_mcp.models.posts import PostReceipt, QuestionRecord, VoteReceipt
from stackoverflow_mcp.stackexchange_client import StackExchangeClient

logger = logging.getLogger(__name__)

MIN_TRIED_APPROACHES = 3
DUPLICATE_SEARCH_SIZE = 3


class WritePolicyGate:
    """
    Gate in front of the client's write operations.

    The server is meant to be driven autonomously, so each write first runs
    its checks and only reaches the API when every one of them passes. Any
    failed or unconfirmable precondition raises PolicyRejected.
    """

    def __init__(
        self,
        client: StackExchangeClient,
        credentials: Optional[Credentials] = None,
        prometheus_exporter=None,
    ):
        """
        Initialize the gate.

        Args:
            client: Stack Exchange client performing the checks and writes
            credentials: Credentials to require (defaults to the client's)
            prometheus_exporter: Optional Prometheus exporter for metrics
        """
        self.client = client
        self.credentials = credentials if credentials is not None else client.credentials
        self.prometheus_exporter = prometheus_exporter

    def _reject(self, tool: str, reason: str) -> PolicyRejected:
        logger.warning(f"{tool} rejected: {reason}")
        if self.prometheus_exporter:
            self.prometheus_exporter.record_policy_rejection(tool)
        return PolicyRejected(reason)

    def _require_credentials(self, tool: str) -> None:
        missing = self.credentials.missing_for_write()
        if missing:
            logger.warning(f"{tool} refused: missing {', '.join(missing)}")
            raise ConfigurationError(
                f"{tool} requires Stack Exchange credentials; set {', '.join(missing)}"
            )

    async def _existing_question(self, tool: str, question_id: int) -> QuestionRecord:
        question = await self.client.fetch_question(question_id)
        if question is None:
            raise self._reject(tool, f"Question {question_id} was not found")
        return question

    async def post_question(
        self,
        title: str,
        body: str,
        tags: List[str],
        error_signature: str,
        tried_approaches: List[str],
    ) -> PostReceipt:
        """
        Ask a new question, unless a similar one already exists.

        Args:
            title: Question title
            body: Question body
            tags: Tags for the question
            error_signature: Succinct error summary used for the duplicate search
            tried_approaches: Fixes already attempted; at least three distinct ones

        Returns:
            Receipt with the new question's id and link
        """
        distinct = {approach.strip().lower() for approach in tried_approaches if approach.strip()}
        if len(distinct) < MIN_TRIED_APPROACHES:
            raise self._reject(
                "post_question",
                f"At least {MIN_TRIED_APPROACHES} distinct tried approaches are required "
                f"before asking (got {len(distinct)})",
            )

        self._require_credentials("post_question")

        duplicates = await self.client.search(
            error_signature, tags=tags or None, page_size=DUPLICATE_SEARCH_SIZE
        )
        if duplicates:
            links = ", ".join(q["link"] for q in duplicates if q.get("link"))
            raise self._reject(
                "post_question",
                f"A similar question already exists (duplicate exists): {links}",
            )

        return await self.client.post_question(title, body, tags)

    async def post_solution(
        self,
        question_id: int,
        body: str,
        confirmed_resolved: bool,
        evidence: List[str],
    ) -> PostReceipt:
        """
        Answer an unanswered question with a confirmed solution.

        Any existing answer, related or not, blocks the post.
        """
        if not confirmed_resolved:
            raise self._reject(
                "post_solution", "Solution must be confirmed to resolve the issue (confirmedResolved)"
            )
        if not [item for item in evidence if item.strip()]:
            raise self._reject("post_solution", "Evidence is required to post a solution")

        self._require_credentials("post_solution")

        question = await self._existing_question("post_solution", question_id)
        if question["accepted_answer_id"] is not None or question["answer_count"] > 0:
            raise self._reject(
                "post_solution",
                f"Question {question_id} already has answers; comment or upvote instead",
            )

        return await self.client.post_answer(question_id, body)

    async def thumbs_up(self, post_id: int, confirmed_fixed: bool) -> VoteReceipt:
        """Upvote a post that is confirmed to have fixed the problem."""
        if not confirmed_fixed:
            raise self._reject(
                "thumbs_up", "Only upvote posts confirmed to fix the issue (confirmedFixed)"
            )

        self._require_credentials("thumbs_up")
        return await self.client.upvote(post_id)

    async def comment_solution(self, question_id: int, body: str) -> PostReceipt:
        """Comment on a question that has no accepted answer yet."""
        self._require_credentials("comment_solution")

        question = await self._existing_question("comment_solution", question_id)
        if question["accepted_answer_id"] is not None:
            raise self._reject(
                "comment_solution",
                f"Question {question_id} already has an accepted answer",
            )

        return await self.client.post_comment(question_id, body)
