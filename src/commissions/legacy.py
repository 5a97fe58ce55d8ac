"""Write-through to the legacy organization-level commission table.

The legacy table only knows percentage tiers, so flat-fee tiers are
written with a fixed fallback fraction. Everything here is best effort:
a database failure is logged and the caller carries on. Writes are not
serialized with the current-schema update, so under concurrent saves the
legacy rows can lag behind the latest configuration. Remove this
module together with ``LegacyCommissionTier`` once no code path reads the
legacy table any more.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Sequence

from django.conf import settings
from django.db import DatabaseError, transaction

from .engine import PercentRate, ResolvedTier
from .models import LegacyCommissionTier

logger = logging.getLogger("coaching")

HUNDRED = Decimal("100")

LEGACY_METHODS = {
    "FLAT_FEE": "FLAT",
    "PERCENTAGE": "FLAT",
    "PROGRESSIVE": "PROGRESSIVE",
    "GRADUATED": "GRADUATED",
}


def flat_fee_fallback() -> Decimal:
    return Decimal(str(getattr(settings, "LEGACY_FLAT_FEE_FALLBACK_FRACTION", "0.5")))


def legacy_rows_for(method: str, tiers: Sequence[ResolvedTier]) -> list[dict]:
    """Translate a current-schema tier table to legacy rows (lossy)."""
    if method in ("FLAT_FEE", "PERCENTAGE"):
        rate = tiers[0].rate
        percentage = rate.percent / HUNDRED if isinstance(rate, PercentRate) else flat_fee_fallback()
        return [{"min_sessions": 1, "max_sessions": None, "percentage": percentage}]

    rows = []
    for index, tier in enumerate(tiers):
        if index + 1 < len(tiers):
            max_sessions = tiers[index + 1].min_sessions - 1
        else:
            max_sessions = None
        if isinstance(tier.rate, PercentRate):
            percentage = tier.rate.percent / HUNDRED
        else:
            percentage = flat_fee_fallback()
        rows.append(
            {
                "min_sessions": tier.min_sessions,
                "max_sessions": max_sessions,
                "percentage": percentage,
            }
        )
    return rows


def _replace_legacy_rows(organization_id, rows: list[dict]) -> None:
    LegacyCommissionTier.objects.filter(organization_id=organization_id).delete()
    LegacyCommissionTier.objects.bulk_create(
        [LegacyCommissionTier(organization_id=organization_id, **row) for row in rows]
    )


def write_legacy_tiers(organization_id, method: str, tiers: Sequence[ResolvedTier]) -> bool:
    """Mirror a saved configuration into the legacy table. Returns False on failure."""
    from organizations.models import Organization

    try:
        with transaction.atomic():
            Organization.objects.filter(pk=organization_id).update(
                commission_method=LEGACY_METHODS[method]
            )
            _replace_legacy_rows(organization_id, legacy_rows_for(method, tiers))
    except DatabaseError:
        logger.warning(
            "Legacy commission tiers not written for organization=%s",
            organization_id,
            exc_info=True,
        )
        return False
    return True
