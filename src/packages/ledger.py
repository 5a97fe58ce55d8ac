"""Pure entitlement arithmetic for a package's payment history.

Nothing here touches the database: callers hand in the package figures,
the payment amounts and the used-session count, and get back integers or
a frozen ``PaymentSummary``. Money is ``Decimal`` throughout.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import ROUND_FLOOR, Decimal
from typing import Iterable

from core.money import ZERO, quantize, to_decimal, tolerance

HUNDRED = Decimal("100")


def calculate_unlocked_sessions(total_paid, total_value, total_sessions: int) -> int:
    """Number of sessions the client is entitled to for ``total_paid``.

    ``floor(total_paid / total_value * total_sessions)``, never negative and
    never above ``total_sessions``. A package with no value (or no
    sessions) unlocks nothing.
    """
    total_paid = to_decimal(total_paid)
    total_value = to_decimal(total_value)
    if total_sessions <= 0 or total_value <= 0 or total_paid <= 0:
        return 0
    if total_paid >= total_value:
        return total_sessions
    # Multiply first so 1/3 * 3 style inputs stay exact.
    unlocked = (total_paid * total_sessions / total_value).to_integral_value(rounding=ROUND_FLOOR)
    return max(0, min(total_sessions, int(unlocked)))


def sessions_unlocked_by_payment(total_paid, amount, total_value, total_sessions: int) -> int:
    """Extra sessions a prospective payment of ``amount`` would unlock."""
    before = calculate_unlocked_sessions(total_paid, total_value, total_sessions)
    after = calculate_unlocked_sessions(
        to_decimal(total_paid) + to_decimal(amount), total_value, total_sessions
    )
    return after - before


@dataclass(frozen=True)
class PaymentSummary:
    package_id: str | None
    total_value: Decimal
    total_sessions: int
    total_paid: Decimal
    remaining_balance: Decimal
    unlocked_sessions: int
    used_sessions: int
    available_sessions: int
    payment_count: int
    is_fully_paid: bool
    payment_progress: Decimal

    @property
    def can_log_session(self) -> bool:
        return self.available_sessions > 0

    def as_dict(self) -> dict:
        data = asdict(self)
        data["can_log_session"] = self.can_log_session
        return data


def build_summary(
    *,
    total_value,
    total_sessions: int,
    amounts: Iterable,
    used_sessions: int,
    package_id=None,
) -> PaymentSummary:
    amounts = [to_decimal(a) for a in amounts]
    total_value = quantize(total_value)
    total_paid = quantize(sum(amounts, ZERO))
    unlocked = calculate_unlocked_sessions(total_paid, total_value, total_sessions)

    if total_value > 0:
        progress = min(HUNDRED, total_paid / total_value * HUNDRED)
    else:
        progress = HUNDRED
    return PaymentSummary(
        package_id=str(package_id) if package_id is not None else None,
        total_value=total_value,
        total_sessions=total_sessions,
        total_paid=total_paid,
        remaining_balance=max(ZERO, total_value - total_paid),
        unlocked_sessions=unlocked,
        used_sessions=used_sessions,
        available_sessions=max(0, unlocked - used_sessions),
        payment_count=len(amounts),
        is_fully_paid=total_paid >= total_value - tolerance(),
        payment_progress=quantize(progress),
    )
