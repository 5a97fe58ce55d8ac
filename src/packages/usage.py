"""Session usage counts consumed by the ledger and the commission engine.

Session logging and cancellation live outside this project's financial
core; this module only counts what has been recorded.
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Protocol

from django.db.models import DecimalField, Sum
from django.db.models.functions import Coalesce


class SessionUsageOracle(Protocol):
    def get_used_session_count(self, package_id) -> int:
        ...

    def get_validated_session_count(self, trainer_id, period_start: date, period_end: date) -> int:
        ...

    def get_validated_session_value(self, trainer_id, period_start: date, period_end: date) -> Decimal:
        ...


class ORMSessionUsage:
    """Counts ``TrainingSession`` rows.

    Must be called inside the caller's transaction when the result gates a
    write, so the count and the write see the same snapshot.
    """

    def _validated(self, trainer_id, period_start, period_end):
        from packages.models import TrainingSession

        return TrainingSession.objects.filter(
            trainer_id=trainer_id,
            validated=True,
            cancelled=False,
            session_date__date__gte=period_start,
            session_date__date__lte=period_end,
        )

    def get_used_session_count(self, package_id) -> int:
        from packages.models import TrainingSession

        return TrainingSession.objects.filter(package_id=package_id, cancelled=False).count()

    def get_validated_session_count(self, trainer_id, period_start, period_end) -> int:
        return self._validated(trainer_id, period_start, period_end).count()

    def get_validated_session_value(self, trainer_id, period_start, period_end) -> Decimal:
        return self._validated(trainer_id, period_start, period_end).aggregate(
            total=Coalesce(
                Sum("session_value"),
                Decimal("0.00"),
                output_field=DecimalField(max_digits=18, decimal_places=2),
            )
        )["total"]


def default_usage() -> SessionUsageOracle:
    return ORMSessionUsage()
