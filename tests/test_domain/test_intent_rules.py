"""Tests for the intent rules engine.

These tests verify that:
    1. determine_order_type is total and honors rule precedence.
    2. should_show_prompt returns at most one prompt, highest priority first.
    3. apply_conversion is idempotent and applies the trial policy for TRY.
    4. The intent catalogue matches the actionable set.
"""

from __future__ import annotations

import itertools

import pytest

from errand_fulfillment.domain.enums import (
    ACTIONABLE_INTENTS,
    Intent,
    OrderStructureType,
    PromptReason,
    RecipientType,
)
from errand_fulfillment.domain.intent_rules import (
    INTENT_METADATA,
    OrderState,
    apply_conversion,
    determine_order_type,
    get_intent_metadata,
    get_try_constraints,
    intent_to_order_type,
    is_actionable,
    should_show_prompt,
)


class TestDetermineOrderType:
    """Precedence of the structure-type rules."""

    @pytest.mark.parametrize("recipient", list(RecipientType))
    def test_coordinate_is_always_chain(self, recipient: RecipientType) -> None:
        assert determine_order_type(Intent.COORDINATE, False, recipient, 1) == OrderStructureType.CHAIN

    def test_buy_for_third_party_is_chain(self) -> None:
        result = determine_order_type(Intent.BUY, True, RecipientType.THIRD_PARTY, 1)
        assert result == OrderStructureType.CHAIN

    def test_buy_for_self_is_purchase_deliver(self) -> None:
        result = determine_order_type(Intent.BUY, False, RecipientType.SELF, 5)
        assert result == OrderStructureType.PURCHASE_DELIVER

    def test_task_without_purchase_for_self_is_direct(self) -> None:
        # The direct rule wins over the stage-count fallback
        result = determine_order_type(Intent.TASK, False, RecipientType.SELF, 4)
        assert result == OrderStructureType.DIRECT

    def test_task_with_purchase_is_purchase_deliver(self) -> None:
        for recipient in RecipientType:
            result = determine_order_type(Intent.TASK, True, recipient, 1)
            assert result == OrderStructureType.PURCHASE_DELIVER

    def test_try_follows_purchase_flag(self) -> None:
        assert (
            determine_order_type(Intent.TRY, True, RecipientType.SELF, 1)
            == OrderStructureType.PURCHASE_DELIVER
        )
        assert (
            determine_order_type(Intent.TRY, False, RecipientType.THIRD_PARTY, 3)
            == OrderStructureType.DIRECT
        )

    def test_task_for_third_party_falls_back_on_stage_count(self) -> None:
        assert (
            determine_order_type(Intent.TASK, False, RecipientType.THIRD_PARTY, 3)
            == OrderStructureType.CHAIN
        )
        assert (
            determine_order_type(Intent.TASK, False, RecipientType.THIRD_PARTY, 2)
            == OrderStructureType.DIRECT
        )

    def test_non_actionable_intents_fall_back(self) -> None:
        assert (
            determine_order_type(Intent.DISCOVER, False, RecipientType.SELF, 0)
            == OrderStructureType.DIRECT
        )
        assert (
            determine_order_type(Intent.RATE, True, RecipientType.SELF, 3)
            == OrderStructureType.CHAIN
        )

    def test_total_over_all_inputs(self) -> None:
        for intent, has_purchase, recipient, stages in itertools.product(
            Intent, (True, False), RecipientType, range(0, 6)
        ):
            result = determine_order_type(intent, has_purchase, recipient, stages)
            assert result in OrderStructureType

    def test_order_state_derives_type(self) -> None:
        state = OrderState(intent=Intent.BUY, recipient_type=RecipientType.THIRD_PARTY)
        assert state.order_type == OrderStructureType.CHAIN

    def test_initial_type_per_intent(self) -> None:
        assert intent_to_order_type(Intent.BUY) == OrderStructureType.PURCHASE_DELIVER
        assert intent_to_order_type(Intent.COORDINATE) == OrderStructureType.CHAIN
        assert intent_to_order_type(Intent.RATE) == OrderStructureType.DIRECT


class TestShouldShowPrompt:
    """Reclassification prompts, first match wins."""

    def test_task_with_purchase_suggests_buy(self) -> None:
        result = should_show_prompt(OrderState(intent=Intent.TASK, has_purchase=True))
        assert result.show is True
        assert result.suggested_intent == Intent.BUY
        assert result.reason == PromptReason.HAS_PURCHASE
        assert result.auto_convert is False

    def test_task_for_third_party_suggests_coordinate(self) -> None:
        result = should_show_prompt(
            OrderState(intent=Intent.TASK, recipient_type=RecipientType.THIRD_PARTY)
        )
        assert result.suggested_intent == Intent.COORDINATE
        assert result.reason == PromptReason.THIRD_PARTY

    def test_task_with_purchase_for_third_party_prefers_third_party(self) -> None:
        result = should_show_prompt(
            OrderState(
                intent=Intent.TASK,
                has_purchase=True,
                recipient_type=RecipientType.THIRD_PARTY,
            )
        )
        assert result.reason == PromptReason.THIRD_PARTY

    def test_buy_for_third_party_auto_converts(self) -> None:
        result = should_show_prompt(
            OrderState(intent=Intent.BUY, recipient_type=RecipientType.THIRD_PARTY)
        )
        assert result.show is True
        assert result.auto_convert is True
        assert result.suggested_intent == Intent.COORDINATE
        assert result.reason == PromptReason.AUTO_CONVERT

    def test_auto_convert_beats_complex_chain(self) -> None:
        result = should_show_prompt(
            OrderState(
                intent=Intent.BUY,
                recipient_type=RecipientType.THIRD_PARTY,
                stages_count=5,
            )
        )
        assert result.reason == PromptReason.AUTO_CONVERT
        assert result.auto_convert is True

    @pytest.mark.parametrize("intent", [Intent.TASK, Intent.BUY])
    def test_many_stages_suggest_coordinate(self, intent: Intent) -> None:
        result = should_show_prompt(OrderState(intent=intent, stages_count=3))
        assert result.suggested_intent == Intent.COORDINATE
        assert result.reason == PromptReason.COMPLEX_CHAIN
        assert result.auto_convert is False

    def test_handover_suggests_coordinate(self) -> None:
        result = should_show_prompt(OrderState(intent=Intent.BUY, has_handover=True))
        assert result.reason == PromptReason.COMPLEX_CHAIN

    def test_two_stages_no_prompt(self) -> None:
        result = should_show_prompt(OrderState(intent=Intent.BUY, stages_count=2))
        assert result.show is False
        assert result.suggested_intent is None
        assert result.reason is None

    @pytest.mark.parametrize(
        "intent", [Intent.COORDINATE, Intent.TRY, Intent.DISCOVER, Intent.RATE]
    )
    def test_other_intents_never_prompt(self, intent: Intent) -> None:
        for has_purchase, recipient, stages, handover in itertools.product(
            (True, False), RecipientType, (1, 3, 6), (True, False)
        ):
            state = OrderState(
                intent=intent,
                has_purchase=has_purchase,
                recipient_type=recipient,
                stages_count=stages,
                has_handover=handover,
            )
            assert should_show_prompt(state).show is False

    def test_auto_convert_only_for_buy_third_party(self) -> None:
        for intent, has_purchase, recipient, stages in itertools.product(
            Intent, (True, False), RecipientType, (1, 3)
        ):
            result = should_show_prompt(
                OrderState(
                    intent=intent,
                    has_purchase=has_purchase,
                    recipient_type=recipient,
                    stages_count=stages,
                )
            )
            expected = intent == Intent.BUY and recipient == RecipientType.THIRD_PARTY
            assert result.auto_convert is expected


class TestApplyConversion:
    def test_conversion_updates_order_type(self) -> None:
        state = OrderState(intent=Intent.TASK, recipient_type=RecipientType.THIRD_PARTY)
        converted = apply_conversion(state, Intent.COORDINATE)
        assert converted.intent == Intent.COORDINATE
        assert converted.order_type == OrderStructureType.CHAIN
        assert converted.recipient_type == RecipientType.THIRD_PARTY

    def test_conversion_is_idempotent(self) -> None:
        state = OrderState(intent=Intent.TASK, has_purchase=True, stages_count=4)
        for target in Intent:
            once = apply_conversion(state, target)
            assert apply_conversion(once, target) == once

    def test_original_state_untouched(self) -> None:
        state = OrderState(intent=Intent.TASK, stages_count=5, recurring=True)
        apply_conversion(state, Intent.TRY)
        assert state.intent == Intent.TASK
        assert state.stages_count == 5

    def test_try_applies_trial_policy(self) -> None:
        state = OrderState(intent=Intent.TASK, stages_count=5, recurring=True)
        converted = apply_conversion(state, Intent.TRY)
        assert converted.intent == Intent.TRY
        assert converted.stages_count == 2
        assert converted.recurring is False
        assert converted.experiment_flag is True

    def test_try_keeps_short_plans(self) -> None:
        converted = apply_conversion(OrderState(intent=Intent.BUY, stages_count=1), Intent.TRY)
        assert converted.stages_count == 1

    def test_accepting_auto_convert_clears_prompt(self) -> None:
        state = OrderState(intent=Intent.BUY, recipient_type=RecipientType.THIRD_PARTY)
        prompt = should_show_prompt(state)
        converted = apply_conversion(state, prompt.suggested_intent)
        assert should_show_prompt(converted).show is False


class TestCatalogue:
    def test_try_constraints(self) -> None:
        constraints = get_try_constraints()
        assert constraints.stages_max == 2
        assert constraints.recurring is False
        assert constraints.require_price_cap is True
        assert constraints.experiment_flag is True

    def test_metadata_covers_every_intent(self) -> None:
        assert {m.code for m in INTENT_METADATA} == set(Intent)

    def test_metadata_actionable_flag_matches(self) -> None:
        for meta in INTENT_METADATA:
            assert meta.is_actionable == (meta.code in ACTIONABLE_INTENTS)
            assert is_actionable(meta.code) == meta.is_actionable

    def test_lookup(self) -> None:
        meta = get_intent_metadata(Intent.BUY)
        assert meta is not None
        assert meta.title == "Buy for Me"
