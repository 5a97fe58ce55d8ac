"""Trainer commission calculation and persistence."""
from __future__ import annotations

import logging
from datetime import date

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from core.exceptions import Forbidden, NotFound, ValidationError
from core.money import ZERO, quantize
from packages.usage import default_usage

from .engine import compute_commission
from .models import CommissionCalculation
from .profiles import CurrentConfig, config_for_trainer

logger = logging.getLogger("coaching")


def get_trainer(trainer_id, organization_id):
    from accounts.models import User

    try:
        trainer = User.objects.select_related("organization", "commission_profile").get(pk=trainer_id)
    except (User.DoesNotExist, DjangoValidationError):
        raise NotFound("Coach introuvable.")
    if str(trainer.organization_id) != str(organization_id):
        raise Forbidden("Ce coach appartient a une autre organisation.")
    if not trainer.is_trainer:
        raise ValidationError("Cet utilisateur n'est pas un coach.")
    return trainer


@transaction.atomic
def calculate_trainer_commission(
    *,
    trainer,
    period_start: date,
    period_end: date,
    usage=None,
) -> CommissionCalculation:
    """Compute and store the commission of ``trainer`` for a period.

    Parameters
    ----------
    trainer : User
        A TRAINER attached to an organization.
    period_start, period_end : date
        Inclusive bounds; only validated, non-cancelled sessions count.

    Returns
    -------
    CommissionCalculation
        The stored calculation. Recomputing a period overwrites it.
    """
    if period_end < period_start:
        raise ValidationError("La fin de periode precede son debut.")
    usage = usage or default_usage()

    session_count = usage.get_validated_session_count(trainer.pk, period_start, period_end)
    if session_count:
        total_value = usage.get_validated_session_value(trainer.pk, period_start, period_end)
        session_value = total_value / session_count
    else:
        session_value = ZERO

    config = config_for_trainer(trainer)
    result = compute_commission(session_count, session_value, config.tiers, config.mode)

    snapshot = result.snapshot(config.tiers)
    snapshot["source"] = config.source
    calculation, _created = CommissionCalculation.objects.update_or_create(
        trainer=trainer,
        period_start=period_start,
        period_end=period_end,
        defaults={
            "profile_id": config.profile_id if isinstance(config, CurrentConfig) else None,
            "session_count": session_count,
            "session_value": quantize(session_value),
            "method": result.mode.value,
            "tier_reached": result.tier_reached,
            "commission_amount": result.amount,
            "calculation_snapshot": snapshot,
        },
    )
    logger.info(
        "Commission computed trainer=%s period=%s..%s sessions=%s amount=%s",
        trainer.pk,
        period_start,
        period_end,
        session_count,
        result.amount,
    )
    return calculation
