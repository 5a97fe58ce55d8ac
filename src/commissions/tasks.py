"""Celery tasks for the commissions module."""
from __future__ import annotations

import logging
from calendar import monthrange
from datetime import date

from celery import shared_task

logger = logging.getLogger(__name__)


def _month_bounds(period: str) -> tuple[date, date]:
    year, month = (int(part) for part in period.split("-"))
    return date(year, month, 1), date(year, month, monthrange(year, month)[1])


@shared_task
def calculate_organization_commissions(*, organization_id: str, period: str):
    """Compute commissions of every active trainer of an organization for a "YYYY-MM" period."""
    from accounts.models import User
    from commissions.services import calculate_trainer_commission

    period_start, period_end = _month_bounds(period)
    trainers = User.objects.filter(
        organization_id=organization_id,
        role=User.Role.TRAINER,
        is_active=True,
    ).select_related("organization", "commission_profile")

    computed = 0
    for trainer in trainers:
        calculate_trainer_commission(
            trainer=trainer,
            period_start=period_start,
            period_end=period_end,
        )
        computed += 1
    logger.info(
        "Computed commissions organization=%s period=%s (%d trainers)",
        organization_id,
        period,
        computed,
    )
    return computed


@shared_task
def calculate_monthly_commissions():
    """
    Scheduled daily (Celery Beat). Only runs logic on the 1st of each month:
    computes last month's commissions for every active organization.
    """
    from organizations.models import Organization

    today = date.today()
    # Guard: only run on day 1 of month
    if today.day != 1:
        logger.debug("calculate_monthly_commissions: skipping (today is day %d)", today.day)
        return 0
    if today.month == 1:
        prev_year, prev_month = today.year - 1, 12
    else:
        prev_year, prev_month = today.year, today.month - 1
    period = f"{prev_year}-{prev_month:02d}"

    total = 0
    for organization_id in Organization.objects.filter(is_active=True).values_list("id", flat=True):
        total += calculate_organization_commissions(
            organization_id=str(organization_id),
            period=period,
        )
    logger.info("Monthly commissions closed for period=%s (%d trainers)", period, total)
    return total
