"""Stack Exchange API client with throttled access for every request."""

import asyncio
import json
import logging
from contextlib import nullcontext
from typing import Any, Dict, List, Optional

import aiohttp

from stackoverflow_mcp.collector.error_handler import ThrottledInvoker
from stackoverflow_mcp.config import Config
from stackoverflow_mcp.errors import ConfigurationError, RemoteApiError, TransportError
from stackoverflow_mcp.models.mapping import (
    answer_from_item,
    comment_from_item,
    items_to_records,
    question_from_item,
    receipt_from_item,
)
from stackoverflow_mcp.models.posts import (
    AnswerRecord,
    CommentRecord,
    PostReceipt,
    QuestionRecord,
    VoteReceipt,
)

logger = logging.getLogger(__name__)

# The API leaves bodies out unless this built-in filter is requested
BODY_FILTER = "withbody"


class StackExchangeClient:
    """
    Client for the Stack Exchange API.

    Issues the read and write operations the server needs. Each operation is a
    single HTTP round trip run through the shared ThrottledInvoker.
    """

    def __init__(
        self,
        config: Config,
        invoker: ThrottledInvoker,
        session: Optional[aiohttp.ClientSession] = None,
        prometheus_exporter=None,
    ):
        """
        Initialize the client.

        Args:
            config: Application configuration with site, endpoint and credentials
            invoker: Throttled invoker shared by every call
            session: Optional pre-built aiohttp session (created lazily otherwise)
            prometheus_exporter: Optional Prometheus exporter for metrics
        """
        self.config = config
        self.credentials = config.credentials
        self.invoker = invoker
        self.prometheus_exporter = prometheus_exporter
        self._session = session
        self._owns_session = session is None
        self.base_url = config.api_base_url.rstrip("/")

    async def __aenter__(self) -> "StackExchangeClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.config.request_timeout_sec)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._session is not None and self._owns_session:
            logger.info("Closing Stack Exchange client session")
            await self._session.close()
        self._session = None

    # ------------------------------------------------------------------
    # Request plumbing
    # ------------------------------------------------------------------

    def _read_params(self, **extra: Any) -> Dict[str, str]:
        params = {
            "site": self.config.site,
            "sort": "votes",
            "order": "desc",
            "filter": BODY_FILTER,
        }
        params.update({key: str(value) for key, value in extra.items() if value is not None})
        if self.credentials.api_key:
            params["key"] = self.credentials.api_key
        if self.credentials.access_token:
            params["access_token"] = self.credentials.access_token
        return params

    def _write_params(self, **fields: Any) -> Dict[str, str]:
        missing = self.credentials.missing_for_write()
        if missing:
            raise ConfigurationError(
                f"Write operations require credentials; missing {', '.join(missing)}"
            )
        data = {
            "site": self.config.site,
            "key": self.credentials.api_key,
            "access_token": self.credentials.access_token,
            "filter": BODY_FILTER,
            "preview": "false",
        }
        data.update({key: str(value) for key, value in fields.items()})
        return data

    async def _decode(self, response: aiohttp.ClientResponse, path: str) -> Dict[str, Any]:
        text = await response.text()

        try:
            payload = json.loads(text) if text else None
        except ValueError:
            payload = None

        if response.status >= 400 or (isinstance(payload, dict) and "error_id" in payload):
            if isinstance(payload, dict) and "error_message" in payload:
                raise RemoteApiError(
                    code=int(payload.get("error_id", response.status)),
                    message=payload["error_message"],
                    status=response.status,
                    name=payload.get("error_name"),
                )
            raise RemoteApiError(code=response.status, message=text, status=response.status)

        if not isinstance(payload, dict):
            raise TransportError(f"Unexpected non-JSON response from {path}")

        return payload

    def _track_wrapper(self, payload: Dict[str, Any]) -> None:
        quota = payload.get("quota_remaining")
        if quota is not None:
            logger.debug(f"Stack Exchange quota remaining: {quota}")
            if self.prometheus_exporter:
                self.prometheus_exporter.set_quota_remaining(quota)
        if payload.get("backoff"):
            logger.warning(f"API requested a backoff of {payload['backoff']}s")

    async def _send(
        self,
        method: str,
        path: str,
        operation: str,
        params: Optional[Dict[str, str]] = None,
        data: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {url} ({operation})")

        if self.prometheus_exporter:
            self.prometheus_exporter.record_api_call(operation)
            timer = self.prometheus_exporter.time_request()
        else:
            timer = None

        session = self._get_session()
        try:
            with timer if timer else nullcontext():
                async with session.request(method, url, params=params, data=data) as response:
                    payload = await self._decode(response, path)
        except RemoteApiError as e:
            if self.prometheus_exporter:
                self.prometheus_exporter.record_api_error(e.name or str(e.code))
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            if self.prometheus_exporter:
                self.prometheus_exporter.record_api_error("transport")
            raise TransportError(f"Request to {path} failed: {e!r}", cause=e) from e

        self._track_wrapper(payload)
        return payload

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        params: Optional[Dict[str, str]] = None,
        data: Optional[Dict[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        payload = await self.invoker.invoke(
            lambda: self._send(method, path, operation, params=params, data=data)
        )
        return payload.get("items", [])

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def search(
        self,
        query: str,
        tags: Optional[List[str]] = None,
        page_size: Optional[int] = None,
    ) -> List[QuestionRecord]:
        """
        Full-text and tag search, highest voted first.

        Args:
            query: Free-text query (may be empty for tag-only searches)
            tags: Tags every result must carry
            page_size: Maximum number of questions to return

        Returns:
            Matching questions in API order
        """
        params = self._read_params(
            q=query,
            tagged=";".join(tags) if tags else None,
            pagesize=page_size,
        )
        items = await self._request("GET", "/search/advanced", "search", params=params)
        return items_to_records(items, question_from_item)

    async def fetch_answers(self, question_id: int) -> List[AnswerRecord]:
        """Fetch a question's answers, highest voted first."""
        items = await self._request(
            "GET", f"/questions/{question_id}/answers", "fetch_answers",
            params=self._read_params(),
        )
        return items_to_records(items, answer_from_item)

    async def fetch_comments(self, post_id: int) -> List[CommentRecord]:
        """Fetch the comments on a question or answer."""
        items = await self._request(
            "GET", f"/posts/{post_id}/comments", "fetch_comments",
            params=self._read_params(),
        )
        return items_to_records(items, comment_from_item)

    async def fetch_question(self, question_id: int) -> Optional[QuestionRecord]:
        """Fetch a single question, or None if it does not exist."""
        items = await self._request(
            "GET", f"/questions/{question_id}", "fetch_question",
            params=self._read_params(),
        )
        if not items:
            return None
        return question_from_item(items[0])

    async def fetch_post_type(self, post_id: int) -> Optional[str]:
        """Return 'question' or 'answer' for a post id, or None if it does not exist."""
        items = await self._request(
            "GET", f"/posts/{post_id}", "fetch_post",
            params=self._read_params(),
        )
        if not items:
            return None
        return items[0].get("post_type")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def post_question(self, title: str, body: str, tags: List[str]) -> PostReceipt:
        """Create a question."""
        data = self._write_params(title=title, body=body, tags=";".join(tags))
        items = await self._request("POST", "/questions/add", "post_question", data=data)
        if not items:
            raise TransportError("Question creation returned no item")
        receipt = receipt_from_item(items[0], "question_id")
        logger.info(f"Posted question {receipt['id']}")
        return receipt

    async def post_answer(self, question_id: int, body: str) -> PostReceipt:
        """Create an answer on a question."""
        data = self._write_params(body=body)
        items = await self._request(
            "POST", f"/questions/{question_id}/answers/add", "post_answer", data=data,
        )
        if not items:
            raise TransportError("Answer creation returned no item")
        receipt = receipt_from_item(items[0], "answer_id")
        logger.info(f"Posted answer {receipt['id']} on question {question_id}")
        return receipt

    async def upvote(self, post_id: int) -> VoteReceipt:
        """
        Upvote a question or an answer.

        The API only has type-specific vote routes, so the post type is
        looked up first.

        Raises:
            RemoteApiError: If the post does not exist
        """
        data = self._write_params()
        post_type = await self.fetch_post_type(post_id)
        if post_type not in ("question", "answer"):
            raise RemoteApiError(code=404, message=f"No question or answer with id {post_id}", status=404)

        items = await self._request(
            "POST", f"/{post_type}s/{post_id}/upvote", "upvote", data=data,
        )
        upvoted = bool(items[0].get("upvoted", True)) if items else True
        logger.info(f"Upvoted {post_type} {post_id}")
        return {"post_id": post_id, "post_type": post_type, "upvoted": upvoted}

    async def post_comment(self, post_id: int, body: str) -> PostReceipt:
        """Add a comment to a question or answer."""
        data = self._write_params(body=body)
        items = await self._request(
            "POST", f"/posts/{post_id}/comments/add", "post_comment", data=data,
        )
        if not items:
            raise TransportError("Comment creation returned no item")
        receipt = receipt_from_item(items[0], "comment_id")
        logger.info(f"Posted comment {receipt['id']} on post {post_id}")
        return receipt
