"""Tests for the intent rules endpoints."""

from __future__ import annotations

import pytest


class TestIntentCatalogue:
    @pytest.mark.asyncio
    async def test_list_intents(self, client) -> None:
        resp = await client.get("/api/v1/intents")
        assert resp.status_code == 200
        body = resp.json()
        assert len(body) == 6
        actionable = {i["code"] for i in body if i["is_actionable"]}
        assert actionable == {"TASK", "BUY", "COORDINATE", "TRY"}

    @pytest.mark.asyncio
    async def test_try_constraints(self, client) -> None:
        resp = await client.get("/api/v1/intents/try-constraints")
        assert resp.json() == {
            "stages_max": 2,
            "recurring": False,
            "require_price_cap": True,
            "experiment_flag": True,
        }


class TestEvaluate:
    @pytest.mark.asyncio
    async def test_auto_convert_returns_converted_draft(self, client) -> None:
        resp = await client.post(
            "/api/v1/intents/evaluate",
            json={"intent": "BUY", "recipient_type": "THIRD_PARTY", "stages_count": 5},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["order_type"] == "CHAIN"
        assert body["prompt"]["reason"] == "auto_convert"
        assert body["prompt"]["auto_convert"] is True
        assert body["converted"]["state"]["intent"] == "COORDINATE"
        assert body["converted"]["order_type"] == "CHAIN"

    @pytest.mark.asyncio
    async def test_suggestion_without_conversion(self, client) -> None:
        resp = await client.post(
            "/api/v1/intents/evaluate", json={"intent": "TASK", "has_purchase": True}
        )
        body = resp.json()
        assert body["order_type"] == "PURCHASE_DELIVER"
        assert body["prompt"]["suggested_intent"] == "BUY"
        assert body["converted"] is None

    @pytest.mark.asyncio
    async def test_no_prompt(self, client) -> None:
        resp = await client.post("/api/v1/intents/evaluate", json={"intent": "COORDINATE"})
        assert resp.json()["prompt"] == {
            "show": False,
            "suggested_intent": None,
            "reason": None,
            "auto_convert": False,
        }

    @pytest.mark.asyncio
    async def test_unknown_intent_is_422(self, client) -> None:
        resp = await client.post("/api/v1/intents/evaluate", json={"intent": "SELL"})
        assert resp.status_code == 422


class TestConvert:
    @pytest.mark.asyncio
    async def test_convert_to_try(self, client) -> None:
        resp = await client.post(
            "/api/v1/intents/convert",
            json={
                "state": {"intent": "TASK", "stages_count": 4, "recurring": True},
                "suggested_intent": "TRY",
            },
        )
        body = resp.json()
        assert body["state"]["intent"] == "TRY"
        assert body["state"]["stages_count"] == 2
        assert body["state"]["recurring"] is False
        assert body["state"]["experiment_flag"] is True
        assert body["order_type"] == "DIRECT"
