#!/usr/bin/env python3
"""
Lambda dispatch tests for badge award actions
"""
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio

from badge_awards.aws import lambda_handler as lambda_module
from badge_awards.aws.lambda_handler import LambdaAwardProcessor, lambda_function
from badge_awards.config import Settings
from tests.conftest import BADGE_ID, ISSUER_ID, ISSUER_ROLE, enrol, make_user


def body_of(response):
    return json.loads(response["body"])


def ledger_event(action, recipient_id="u_alice"):
    return {
        "action": action,
        "recipient_id": recipient_id,
        "issuer_id": ISSUER_ID,
        "issuer_role": ISSUER_ROLE,
        "badge_id": BADGE_ID
    }


@pytest_asyncio.fixture
async def processor(classroom, event_sink):
    processor = LambdaAwardProcessor(
        settings=Settings(mongo_uri="mongodb://localhost:27017", db_name="badges_test"),
        shared_db=classroom,
        event_sink=event_sink
    )
    await processor.connect_to_db()
    yield processor
    processor.disconnect_from_db()


class TestLedgerActions:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_award_then_duplicate(self, processor):
        first = await processor.handle(ledger_event("award"))
        second = await processor.handle(ledger_event("award"))

        assert first["statusCode"] == 200
        assert body_of(first)["awarded"] is True
        assert body_of(second)["awarded"] is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_revoke_missing_award_is_404(self, processor, event_sink):
        response = await processor.handle(ledger_event("revoke"))

        assert response["statusCode"] == 404
        assert body_of(response)["success"] is False
        assert event_sink.events == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_revoke_after_award(self, processor, event_sink):
        await processor.handle(ledger_event("award"))

        response = await processor.handle(ledger_event("revoke"))

        assert response["statusCode"] == 200
        assert body_of(response)["revoked"] is True
        assert len(event_sink.events) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_field_is_400(self, processor):
        event = ledger_event("award")
        del event["issuer_role"]

        response = await processor.handle(event)

        assert response["statusCode"] == 400
        assert "issuer_role" in body_of(response)["error"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_action_is_400(self, processor):
        response = await processor.handle({"action": "promote"})

        assert response["statusCode"] == 400


class TestSearchActions:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_potential_with_exclusions(self, processor):
        response = await processor.handle({
            "action": "potential",
            "badge_id": BADGE_ID,
            "issuer_role": ISSUER_ROLE,
            "search": "baker",
            "excluded_ids": ["u_bob"]
        })

        recipients = body_of(response)["recipients"]
        assert [u["id"] for u in recipients["Potential recipients"]] == ["u_carol"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_potential_too_many(self, processor, classroom):
        user_ids = [f"u_bulk_{n:03d}" for n in range(120)]
        await classroom.users.insert_many([make_user(user_id, "Bulk", "Learner") for user_id in user_ids])
        await enrol(classroom, user_ids)

        event = {"action": "potential", "badge_id": BADGE_ID, "issuer_role": ISSUER_ROLE}
        response = await processor.handle(event)
        validating = await processor.handle({**event, "validating": True})

        assert body_of(response)["too_many"] is True
        assert body_of(response)["count"] == 125
        assert len(body_of(validating)["recipients"]["Potential recipients"]) == 125

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_existing(self, processor):
        await processor.handle(ledger_event("award", recipient_id="u_erin"))

        response = await processor.handle({"action": "existing", "badge_id": BADGE_ID, "issuer_role": ISSUER_ROLE})

        assert [u["id"] for u in body_of(response)["recipients"]["Existing recipients"]] == ["u_erin"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_user_badges_for_unknown_user_is_404(self, processor):
        response = await processor.handle({"action": "user_badges", "user_id": "u_nobody"})

        assert response["statusCode"] == 404

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("page", [None, "two", [1]])
    async def test_user_badges_with_bad_page_is_400(self, processor, classroom, page):
        response = await processor.handle({"action": "user_badges", "user_id": "u_alice", "page": page, "per_page": 5})

        assert response["statusCode"] == 400
        assert "page" in body_of(response)["error"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_user_badges_accepts_numeric_strings(self, processor):
        response = await processor.handle({"action": "user_badges", "user_id": "u_alice", "page": "0", "per_page": "5"})

        assert response["statusCode"] == 200
        assert body_of(response)["badges"] == []


@pytest.mark.mocked
def test_lambda_function_runs_processor():
    mocked = MagicMock()
    mocked.connect_to_db = AsyncMock()
    mocked.handle = AsyncMock(return_value={"statusCode": 200, "body": "{}"})

    with patch.object(lambda_module, "processor", mocked):
        result = lambda_function({"action": "existing"}, MagicMock())

    assert result["statusCode"] == 200
    mocked.connect_to_db.assert_awaited_once()
    mocked.handle.assert_awaited_once_with({"action": "existing"})
    mocked.disconnect_from_db.assert_called_once()


@pytest.mark.mocked
def test_lambda_function_reports_unexpected_errors():
    mocked = MagicMock()
    mocked.connect_to_db = AsyncMock(side_effect=RuntimeError("boom"))

    with patch.object(lambda_module, "processor", mocked):
        result = lambda_function({"action": "award"}, MagicMock())

    assert result["statusCode"] == 500
    assert body_of(result)["error"] == "boom"
