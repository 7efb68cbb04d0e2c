"""Tests for the write policy gate."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from stackoverflow_mcp.config import Credentials
from stackoverflow_mcp.errors import ConfigurationError, PolicyRejected
from stackoverflow_mcp.models.mapping import question_from_item
from stackoverflow_mcp.policy.write_gate import WritePolicyGate
from tests.fakes import question_item

WRITE_CREDENTIALS = Credentials(api_key="test-key", access_token="test-token")
APPROACHES = ["Reinstalled the package", "Cleared the cache", "Pinned an older version"]


@pytest.fixture
def client():
    client = MagicMock()
    client.search = AsyncMock(return_value=[])
    client.fetch_question = AsyncMock(
        return_value=question_from_item(question_item(answer_count=0, is_answered=False))
    )
    client.post_question = AsyncMock(return_value={"id": 1, "link": "https://stackoverflow.com/q/1"})
    client.post_answer = AsyncMock(return_value={"id": 2, "link": "https://stackoverflow.com/a/2"})
    client.post_comment = AsyncMock(return_value={"id": 3, "link": None})
    client.upvote = AsyncMock(return_value={"post_id": 4, "post_type": "answer", "upvoted": True})
    return client


@pytest.fixture
def exporter():
    return MagicMock()


@pytest.fixture
def gate(client, exporter):
    return WritePolicyGate(client, WRITE_CREDENTIALS, exporter)


def assert_no_writes(client):
    client.post_question.assert_not_awaited()
    client.post_answer.assert_not_awaited()
    client.post_comment.assert_not_awaited()
    client.upvote.assert_not_awaited()


# ----------------------------------------------------------------------
# post_question
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_post_question_when_no_duplicate(gate, client):
    receipt = await gate.post_question("Title", "Body", ["python"], "ImportError: foo", APPROACHES)

    assert receipt["id"] == 1
    client.search.assert_awaited_once_with("ImportError: foo", tags=["python"], page_size=3)
    client.post_question.assert_awaited_once_with("Title", "Body", ["python"])


@pytest.mark.asyncio
async def test_post_question_needs_three_approaches(gate, client, exporter):
    with pytest.raises(PolicyRejected) as exc_info:
        await gate.post_question("Title", "Body", ["python"], "ImportError", APPROACHES[:2])

    assert "3" in exc_info.value.reason
    client.search.assert_not_awaited()
    assert_no_writes(client)
    exporter.record_policy_rejection.assert_called_once_with("post_question")


@pytest.mark.asyncio
async def test_post_question_counts_distinct_approaches(gate, client):
    repeated = ["Restarted", "restarted ", "RESTARTED", "Upgraded"]

    with pytest.raises(PolicyRejected):
        await gate.post_question("Title", "Body", ["python"], "ImportError", repeated)

    client.search.assert_not_awaited()


@pytest.mark.asyncio
async def test_post_question_rejects_duplicate(gate, client):
    client.search.return_value = [question_from_item(question_item(555))]

    with pytest.raises(PolicyRejected) as exc_info:
        await gate.post_question("Title", "Body", ["python"], "ImportError: foo", APPROACHES)

    assert "duplicate exists" in exc_info.value.reason
    assert "https://stackoverflow.com/q/555" in exc_info.value.reason
    client.post_question.assert_not_awaited()


@pytest.mark.asyncio
async def test_post_question_without_credentials(client):
    gate = WritePolicyGate(client, Credentials(api_key="only-key"))

    with pytest.raises(ConfigurationError):
        await gate.post_question("Title", "Body", ["python"], "ImportError", APPROACHES)

    client.search.assert_not_awaited()
    assert_no_writes(client)


# ----------------------------------------------------------------------
# post_solution
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_post_solution_on_unanswered_question(gate, client):
    receipt = await gate.post_solution(12345, "Fix", True, ["pytest run passed"])

    assert receipt["id"] == 2
    client.fetch_question.assert_awaited_once_with(12345)
    client.post_answer.assert_awaited_once_with(12345, "Fix")


@pytest.mark.asyncio
async def test_post_solution_requires_confirmation(gate, client):
    with pytest.raises(PolicyRejected):
        await gate.post_solution(12345, "Fix", False, ["log"])

    client.fetch_question.assert_not_awaited()
    assert_no_writes(client)


@pytest.mark.asyncio
@pytest.mark.parametrize("evidence", [[], ["", "   "]])
async def test_post_solution_requires_evidence(gate, client, evidence):
    with pytest.raises(PolicyRejected):
        await gate.post_solution(12345, "Fix", True, evidence)

    client.fetch_question.assert_not_awaited()
    assert_no_writes(client)


@pytest.mark.asyncio
async def test_post_solution_blocked_by_existing_answer(gate, client):
    client.fetch_question.return_value = question_from_item(question_item(answer_count=1))

    with pytest.raises(PolicyRejected) as exc_info:
        await gate.post_solution(12345, "Fix", True, ["log"])

    assert "already has answers" in exc_info.value.reason
    client.post_answer.assert_not_awaited()


@pytest.mark.asyncio
async def test_post_solution_blocked_by_accepted_answer(gate, client):
    client.fetch_question.return_value = question_from_item(
        question_item(answer_count=0, accepted_answer_id=67890)
    )

    with pytest.raises(PolicyRejected):
        await gate.post_solution(12345, "Fix", True, ["log"])

    client.post_answer.assert_not_awaited()


@pytest.mark.asyncio
async def test_post_solution_question_not_found(gate, client):
    client.fetch_question.return_value = None

    with pytest.raises(PolicyRejected):
        await gate.post_solution(99, "Fix", True, ["log"])

    client.post_answer.assert_not_awaited()


# ----------------------------------------------------------------------
# thumbs_up
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_thumbs_up_confirmed(gate, client):
    receipt = await gate.thumbs_up(4, True)

    assert receipt["upvoted"] is True
    client.upvote.assert_awaited_once_with(4)


@pytest.mark.asyncio
async def test_thumbs_up_unconfirmed(gate, client):
    with pytest.raises(PolicyRejected):
        await gate.thumbs_up(4, False)

    client.upvote.assert_not_awaited()


@pytest.mark.asyncio
async def test_thumbs_up_without_credentials(client):
    gate = WritePolicyGate(client, Credentials())

    with pytest.raises(ConfigurationError):
        await gate.thumbs_up(4, True)

    client.upvote.assert_not_awaited()


# ----------------------------------------------------------------------
# comment_solution
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_comment_on_question_without_accepted_answer(gate, client):
    client.fetch_question.return_value = question_from_item(question_item(answer_count=3))

    receipt = await gate.comment_solution(12345, "Have you tried X?")

    assert receipt["id"] == 3
    client.post_comment.assert_awaited_once_with(12345, "Have you tried X?")


@pytest.mark.asyncio
async def test_comment_blocked_by_accepted_answer(gate, client, exporter):
    client.fetch_question.return_value = question_from_item(question_item(accepted_answer_id=67890))

    with pytest.raises(PolicyRejected):
        await gate.comment_solution(12345, "Have you tried X?")

    client.post_comment.assert_not_awaited()
    exporter.record_policy_rejection.assert_called_once_with("comment_solution")


@pytest.mark.asyncio
async def test_comment_without_credentials(client):
    gate = WritePolicyGate(client, Credentials())

    with pytest.raises(ConfigurationError):
        await gate.comment_solution(12345, "Have you tried X?")

    client.fetch_question.assert_not_awaited()
