"""Pure escrow arithmetic.

Balances and the order-level escrow status are always derived from the
ledger sums, never incremented in place, so concurrent writers converge on
the same projection whatever the interleaving.

Release policy: held funds are divided equally across the order's stages.
Each release is rounded DOWN to the currency quantum; the release that
settles the last outstanding stage takes the remainder of the held total.
The releases therefore add up to exactly the held total and never more.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal

from errand_fulfillment.domain.enums import EscrowStatus, TransactionType

ZERO = Decimal("0")
DEFAULT_QUANTUM = Decimal("0.01")


@dataclass(frozen=True)
class EscrowBalance:
    held: Decimal = ZERO
    released: Decimal = ZERO
    refunded: Decimal = ZERO
    has_hold: bool = False

    @property
    def remaining(self) -> Decimal:
        return self.held - self.released - self.refunded

    @classmethod
    def from_sums(cls, sums: dict[str, Decimal]) -> EscrowBalance:
        """Build a balance from a {transaction_type: total} mapping."""
        return cls(
            held=Decimal(sums.get(TransactionType.HOLD.value, ZERO)),
            released=Decimal(sums.get(TransactionType.RELEASE.value, ZERO)),
            refunded=Decimal(sums.get(TransactionType.REFUND.value, ZERO)),
            has_hold=TransactionType.HOLD.value in sums,
        )

    def allows(self, amount: Decimal) -> bool:
        """Whether appending a release/refund of `amount` keeps held >= out."""
        return self.released + self.refunded + amount <= self.held

    def to_dict(self) -> dict:
        return {
            "held": str(self.held),
            "released": str(self.released),
            "refunded": str(self.refunded),
            "remaining": str(self.remaining),
        }


def quantize(amount: Decimal, quantum: Decimal = DEFAULT_QUANTUM) -> Decimal:
    return amount.quantize(quantum, rounding=ROUND_DOWN)


def stage_release_amount(
    balance: EscrowBalance,
    total_stages: int,
    releases_so_far: int,
    quantum: Decimal = DEFAULT_QUANTUM,
) -> Decimal:
    """Amount to release for the next stage under the equal-division policy.

    Args:
        balance: Current ledger sums for the order.
        total_stages: Number of stages on the order (must be > 0).
        releases_so_far: Release rows already on the ledger.
        quantum: Currency quantum used for rounding down.
    """
    if total_stages <= 0:
        raise ValueError("total_stages must be positive")

    if releases_so_far >= total_stages - 1:
        return balance.held - balance.released

    return quantize(balance.held / total_stages, quantum)


def derive_escrow_status(balance: EscrowBalance) -> EscrowStatus:
    """Project the order-level escrow status from ledger sums.

    RELEASED only once every held unit has been released.
    """
    if balance.refunded > ZERO:
        return EscrowStatus.REFUNDED
    if balance.released > ZERO:
        if balance.released >= balance.held:
            return EscrowStatus.RELEASED
        return EscrowStatus.PARTIAL
    if balance.has_hold:
        return EscrowStatus.HELD
    return EscrowStatus.NONE
