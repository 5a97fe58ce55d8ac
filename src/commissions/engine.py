"""Commission calculation engine.

Pure functions: (validated session count, session value, tier table,
application mode) -> commission amount. No database access; tiers arrive
as ``ResolvedTier`` values already translated from whichever schema
stored them.

Application modes:
- FLAT: the first tier's rate applies to every session.
- PROGRESSIVE: the highest tier reached applies to every session.
- GRADUATED: each tier's rate applies only to the sessions inside its
  bracket, tax-bracket style.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Sequence, Union

from core.exceptions import ConfigurationError
from core.money import ZERO, quantize, to_decimal

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


class ApplicationMode(str, enum.Enum):
    FLAT = "FLAT"
    PROGRESSIVE = "PROGRESSIVE"
    GRADUATED = "GRADUATED"


# ------------------------------------------------------------------
# Rates
# ------------------------------------------------------------------

@dataclass(frozen=True)
class PercentRate:
    """Percentage (0-100) of the session value."""

    percent: Decimal

    def per_session(self, session_value) -> Decimal:
        return to_decimal(session_value) * self.percent / HUNDRED

    def as_dict(self) -> dict:
        return {"type": "percentage", "percentage": str(self.percent), "flat_fee": None}


@dataclass(frozen=True)
class FlatFeeRate:
    """Fixed amount per session, whatever the session value."""

    amount: Decimal

    def per_session(self, session_value) -> Decimal:
        return self.amount

    def as_dict(self) -> dict:
        return {"type": "flat", "percentage": None, "flat_fee": str(self.amount)}


Rate = Union[PercentRate, FlatFeeRate]


def rate_from_fields(percent=None, flat_fee=None) -> Rate:
    """Build a rate from the two nullable columns; exactly one must be set."""
    if percent is not None and flat_fee is not None:
        raise ConfigurationError("Un palier ne peut avoir a la fois un pourcentage et un montant fixe.")
    if percent is None and flat_fee is None:
        raise ConfigurationError("Chaque palier doit avoir un pourcentage ou un montant fixe.")
    if percent is not None:
        return PercentRate(to_decimal(percent))
    return FlatFeeRate(to_decimal(flat_fee))


# ------------------------------------------------------------------
# Tiers and results
# ------------------------------------------------------------------

@dataclass(frozen=True)
class ResolvedTier:
    level: int
    min_sessions: int
    rate: Rate
    # Inclusive upper bound. None: up to the next tier's minimum (or unbounded).
    max_sessions: Optional[int] = None

    def as_dict(self) -> dict:
        data = {"level": self.level, "min": self.min_sessions, "max": self.max_sessions}
        data.update(self.rate.as_dict())
        return data


@dataclass(frozen=True)
class BracketShare:
    level: int
    sessions: int
    amount: Decimal


@dataclass(frozen=True)
class CommissionResult:
    amount: Decimal
    mode: ApplicationMode
    session_count: int
    session_value: Decimal
    tier_reached: Optional[int] = None
    brackets: tuple = field(default_factory=tuple)

    def snapshot(self, tiers: Sequence[ResolvedTier]) -> dict:
        """JSON-serializable record of what the amount was computed from."""
        return {
            "method": self.mode.value,
            "session_count": self.session_count,
            "session_value": str(quantize(self.session_value)),
            "tier_reached": self.tier_reached,
            "commission": str(self.amount),
            "tiers": [t.as_dict() for t in tiers],
            "brackets": [
                {"level": b.level, "sessions": b.sessions, "amount": str(quantize(b.amount))}
                for b in self.brackets
            ],
        }


# ------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------

def validate_tiers(tiers: Sequence[ResolvedTier]) -> list[ResolvedTier]:
    """Check a tier table at configuration time and return it sorted.

    Raises ``ConfigurationError`` for an empty table, negative or
    non-ascending thresholds, overlapping bounds, or out-of-range rates.
    """
    if not tiers:
        raise ConfigurationError("Au moins un palier est requis.")

    ordered = sorted(tiers, key=lambda t: t.level)
    previous = None
    for tier in ordered:
        if not isinstance(tier.rate, (PercentRate, FlatFeeRate)):
            raise ConfigurationError(f"Palier {tier.level} : type de taux inconnu.")
        if tier.min_sessions < 0:
            raise ConfigurationError(f"Palier {tier.level} : le seuil doit etre positif.")
        if isinstance(tier.rate, PercentRate) and not (ZERO <= tier.rate.percent <= HUNDRED):
            raise ConfigurationError(f"Palier {tier.level} : le pourcentage doit etre entre 0 et 100.")
        if isinstance(tier.rate, FlatFeeRate) and tier.rate.amount < 0:
            raise ConfigurationError(f"Palier {tier.level} : le montant fixe doit etre positif.")
        if tier.max_sessions is not None and tier.max_sessions < tier.min_sessions:
            raise ConfigurationError(f"Palier {tier.level} : le maximum est inferieur au minimum.")
        if previous is not None:
            if tier.min_sessions <= previous.min_sessions:
                raise ConfigurationError("Les seuils des paliers doivent etre strictement croissants.")
            if previous.max_sessions is not None and previous.max_sessions >= tier.min_sessions:
                raise ConfigurationError(
                    f"Les paliers {previous.level} et {tier.level} se chevauchent."
                )
        previous = tier
    return ordered


# ------------------------------------------------------------------
# Resolution
# ------------------------------------------------------------------

def _reached_tier(session_count: int, tiers: Sequence[ResolvedTier]) -> ResolvedTier:
    """Highest tier whose threshold is <= session_count, else the first tier."""
    reached = None
    for tier in tiers:
        if session_count >= tier.min_sessions:
            reached = tier
    return reached if reached is not None else tiers[0]


def _bracket_upper(index: int, tiers: Sequence[ResolvedTier], session_count: int) -> int:
    tier = tiers[index]
    if tier.max_sessions is not None:
        return min(tier.max_sessions, session_count)
    if index + 1 < len(tiers):
        return min(tiers[index + 1].min_sessions - 1, session_count)
    return session_count


def compute_commission(
    session_count: int,
    session_value,
    tiers: Sequence[ResolvedTier],
    mode: ApplicationMode,
) -> CommissionResult:
    mode = ApplicationMode(mode)
    session_value = to_decimal(session_value)
    if session_count <= 0:
        return CommissionResult(amount=quantize(ZERO), mode=mode, session_count=0, session_value=session_value)
    if not tiers:
        raise ConfigurationError("Aucun palier de commission configure.")

    ordered = sorted(tiers, key=lambda t: t.min_sessions)

    if mode is ApplicationMode.FLAT:
        tier = min(ordered, key=lambda t: t.level)
        amount = session_count * tier.rate.per_session(session_value)
        return CommissionResult(
            amount=quantize(amount),
            mode=mode,
            session_count=session_count,
            session_value=session_value,
            tier_reached=tier.level,
            brackets=(BracketShare(tier.level, session_count, amount),),
        )

    reached = _reached_tier(session_count, ordered)

    if mode is ApplicationMode.PROGRESSIVE:
        amount = session_count * reached.rate.per_session(session_value)
        return CommissionResult(
            amount=quantize(amount),
            mode=mode,
            session_count=session_count,
            session_value=session_value,
            tier_reached=reached.level,
            brackets=(BracketShare(reached.level, session_count, amount),),
        )

    # GRADUATED: sessions are numbered from 1; sessions in gaps earn nothing.
    brackets = []
    total = ZERO
    for index, tier in enumerate(ordered):
        lower = max(tier.min_sessions, 1)
        if lower > session_count:
            break
        upper = _bracket_upper(index, ordered, session_count)
        sessions = max(0, upper - lower + 1)
        if sessions == 0:
            continue
        share = sessions * tier.rate.per_session(session_value)
        brackets.append(BracketShare(tier.level, sessions, share))
        total += share

    logger.debug(
        "Graduated commission sessions=%s brackets=%s total=%s",
        session_count,
        [(b.level, b.sessions) for b in brackets],
        total,
    )
    return CommissionResult(
        amount=quantize(total),
        mode=mode,
        session_count=session_count,
        session_value=session_value,
        tier_reached=reached.level,
        brackets=tuple(brackets),
    )


def resolve_commission(
    session_count: int,
    session_value,
    tiers: Sequence[ResolvedTier],
    mode: ApplicationMode,
) -> Decimal:
    """Commission amount for ``session_count`` sessions, rounded to the cent."""
    return compute_commission(session_count, session_value, tiers, mode).amount
