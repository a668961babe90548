"""Tests for escrow arithmetic and the escrow status projection."""

from __future__ import annotations

from decimal import Decimal

import pytest

from errand_fulfillment.domain.enums import EscrowStatus
from errand_fulfillment.domain.escrow_math import (
    EscrowBalance,
    derive_escrow_status,
    quantize,
    stage_release_amount,
)


def _release_all(held: str, stages: int) -> list[Decimal]:
    balance = EscrowBalance(held=Decimal(held), has_hold=True)
    amounts = []
    for n in range(stages):
        amount = stage_release_amount(balance, stages, n)
        amounts.append(amount)
        balance = EscrowBalance(
            held=balance.held, released=balance.released + amount, has_hold=True
        )
    return amounts


class TestStageReleaseAmount:
    def test_even_split(self) -> None:
        assert _release_all("300", 3) == [Decimal("100.00"), Decimal("100.00"), Decimal("100")]

    def test_last_stage_takes_remainder(self) -> None:
        amounts = _release_all("100", 3)
        assert amounts[:2] == [Decimal("33.33"), Decimal("33.33")]
        assert amounts[2] == Decimal("33.34")
        assert sum(amounts) == Decimal("100")

    @pytest.mark.parametrize(
        ("held", "stages"),
        [("0.01", 2), ("10", 3), ("99.99", 7), ("1000.05", 4), ("0.05", 9)],
    )
    def test_never_over_releases(self, held: str, stages: int) -> None:
        amounts = _release_all(held, stages)
        assert all(a >= 0 for a in amounts)
        assert sum(amounts) == Decimal(held)

    def test_single_stage_releases_everything(self) -> None:
        balance = EscrowBalance(held=Decimal("150"), has_hold=True)
        assert stage_release_amount(balance, 1, 0) == Decimal("150")

    def test_zero_stages_rejected(self) -> None:
        with pytest.raises(ValueError):
            stage_release_amount(EscrowBalance(held=Decimal("10")), 0, 0)

    def test_quantize_rounds_down(self) -> None:
        assert quantize(Decimal("33.339")) == Decimal("33.33")


class TestBalance:
    def test_remaining(self) -> None:
        balance = EscrowBalance(Decimal("150"), Decimal("75"), Decimal("25"))
        assert balance.remaining == Decimal("50")

    def test_allows(self) -> None:
        balance = EscrowBalance(Decimal("100"), Decimal("60"))
        assert balance.allows(Decimal("40"))
        assert not balance.allows(Decimal("40.01"))

    def test_from_sums(self) -> None:
        balance = EscrowBalance.from_sums({"hold": Decimal("0"), "release": Decimal("0")})
        assert balance.has_hold is True
        assert balance.held == Decimal("0")
        assert EscrowBalance.from_sums({}).has_hold is False


class TestDeriveEscrowStatus:
    def test_none_without_hold(self) -> None:
        assert derive_escrow_status(EscrowBalance()) == EscrowStatus.NONE

    def test_held(self) -> None:
        balance = EscrowBalance(held=Decimal("300"), has_hold=True)
        assert derive_escrow_status(balance) == EscrowStatus.HELD

    def test_zero_hold_is_still_held(self) -> None:
        balance = EscrowBalance(held=Decimal("0"), has_hold=True)
        assert derive_escrow_status(balance) == EscrowStatus.HELD

    def test_partial(self) -> None:
        balance = EscrowBalance(Decimal("300"), Decimal("100"), has_hold=True)
        assert derive_escrow_status(balance) == EscrowStatus.PARTIAL

    def test_one_quantum_short_is_partial(self) -> None:
        balance = EscrowBalance(Decimal("100"), Decimal("99.99"), has_hold=True)
        assert derive_escrow_status(balance) == EscrowStatus.PARTIAL

    def test_released_when_fully_paid_out(self) -> None:
        balance = EscrowBalance(Decimal("100"), Decimal("100.00"), has_hold=True)
        assert derive_escrow_status(balance) == EscrowStatus.RELEASED

    def test_refund_wins(self) -> None:
        balance = EscrowBalance(Decimal("150"), Decimal("75"), Decimal("75"), has_hold=True)
        assert derive_escrow_status(balance) == EscrowStatus.REFUNDED
