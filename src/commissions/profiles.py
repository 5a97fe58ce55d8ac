"""Effective commission configuration of an organization.

Two storage schemas coexist:

- the current one: a default ``CommissionProfile`` owning ``CommissionTier``
  rows, each with either a percentage or a flat fee;
- the legacy one: organization-level ``LegacyCommissionTier`` percentage
  rows plus ``Organization.commission_method``.

Both are translated here, and only here, into a ``CommissionConfig``
(``CurrentConfig`` or ``LegacyConfig``) holding ``ResolvedTier`` values
the engine understands. The legacy table is read only when no current
profile exists, and written only through ``commissions.legacy``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Union

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from core.exceptions import ConfigurationError, Forbidden, NotFound, ValidationError
from core.money import CENT, to_decimal

from . import legacy
from .engine import (
    ApplicationMode,
    FlatFeeRate,
    PercentRate,
    ResolvedTier,
    rate_from_fields,
    validate_tiers,
)
from .models import CommissionProfile, CommissionTier, LegacyCommissionTier

logger = logging.getLogger("coaching")

HUNDRED = Decimal("100")

INPUT_METHODS = ("FLAT_FEE", "PERCENTAGE", "PROGRESSIVE", "GRADUATED")
DEFAULT_PROFILE_NAME = "Standard Commission"

# Seeded for an organization that has no commission configuration at all.
DEFAULT_LEGACY_TIERS = (
    (0, 30, Decimal("0.25")),
    (31, 60, Decimal("0.30")),
    (61, None, Decimal("0.35")),
)


@dataclass(frozen=True)
class CurrentConfig:
    profile_id: str
    profile_name: str
    calculation_method: str
    application_mode: str
    trigger_type: str
    tiers: tuple

    source = "profile"

    @property
    def mode(self) -> ApplicationMode:
        if self.calculation_method == CommissionProfile.CalculationMethod.FLAT:
            return ApplicationMode.FLAT
        return ApplicationMode(self.application_mode)


@dataclass(frozen=True)
class LegacyConfig:
    organization_id: str
    method: str
    tiers: tuple

    source = "legacy"

    @property
    def mode(self) -> ApplicationMode:
        return ApplicationMode(self.method)


CommissionConfig = Union[CurrentConfig, LegacyConfig]


# ---------------------------------------------------------------------------
# Schema -> ResolvedTier translation
# ---------------------------------------------------------------------------

def config_from_profile(profile: CommissionProfile) -> CurrentConfig:
    tiers = tuple(
        ResolvedTier(
            level=tier.tier_level,
            min_sessions=tier.session_threshold,
            rate=rate_from_fields(tier.session_commission_percent, tier.session_flat_fee),
        )
        for tier in profile.tiers.order_by("tier_level")
    )
    return CurrentConfig(
        profile_id=str(profile.pk),
        profile_name=profile.name,
        calculation_method=profile.calculation_method,
        application_mode=profile.application_mode,
        trigger_type=profile.trigger_type,
        tiers=tiers,
    )


def config_from_legacy(organization) -> LegacyConfig:
    rows = LegacyCommissionTier.objects.filter(organization=organization).order_by("min_sessions")
    tiers = tuple(
        ResolvedTier(
            level=index + 1,
            min_sessions=row.min_sessions,
            max_sessions=row.max_sessions,
            rate=PercentRate((row.percentage * HUNDRED).quantize(CENT)),
        )
        for index, row in enumerate(rows)
    )
    return LegacyConfig(
        organization_id=str(organization.pk),
        method=organization.commission_method,
        tiers=tiers,
    )


def _get_organization(organization_id):
    from organizations.models import Organization

    try:
        return Organization.objects.get(pk=organization_id)
    except (Organization.DoesNotExist, DjangoValidationError):
        raise NotFound("Organisation introuvable.")


def _default_profile(organization_id) -> Optional[CommissionProfile]:
    return CommissionProfile.objects.filter(
        organization_id=organization_id,
        is_default=True,
    ).first()


def get_commission_config(organization_id) -> CommissionConfig:
    """Default profile of the organization, else its legacy table."""
    profile = _default_profile(organization_id)
    if profile is not None:
        return config_from_profile(profile)
    return config_from_legacy(_get_organization(organization_id))


def ensure_default_legacy_tiers(organization) -> bool:
    """Seed the standard legacy tiers when an organization has none. True if seeded."""
    if LegacyCommissionTier.objects.filter(organization=organization).exists():
        return False
    LegacyCommissionTier.objects.bulk_create(
        [
            LegacyCommissionTier(
                organization=organization,
                min_sessions=low,
                max_sessions=high,
                percentage=percentage,
            )
            for low, high, percentage in DEFAULT_LEGACY_TIERS
        ]
    )
    logger.info("Seeded default legacy commission tiers for organization=%s", organization.pk)
    return True


def config_for_trainer(trainer) -> CommissionConfig:
    """Configuration a trainer is paid with: own profile, organization default, legacy table."""
    if trainer.organization_id is None:
        raise ValidationError("Ce coach n'est rattache a aucune organisation.")

    profile = trainer.commission_profile
    if profile is not None and profile.is_active and profile.organization_id == trainer.organization_id:
        return config_from_profile(profile)

    profile = _default_profile(trainer.organization_id)
    if profile is not None:
        return config_from_profile(profile)

    organization = trainer.organization
    ensure_default_legacy_tiers(organization)
    return config_from_legacy(organization)


# ---------------------------------------------------------------------------
# Display representation (GET)
# ---------------------------------------------------------------------------

def _tiers_payload(tiers) -> list[dict]:
    payload = []
    for index, tier in enumerate(tiers):
        if tier.max_sessions is not None:
            max_sessions = tier.max_sessions
        elif index + 1 < len(tiers):
            max_sessions = tiers[index + 1].min_sessions - 1
        else:
            max_sessions = None
        item = {"min": tier.min_sessions, "max": max_sessions}
        item.update(tier.rate.as_dict())
        payload.append(item)
    return payload


def get_effective_commission_config(organization_id) -> dict:
    config = get_commission_config(organization_id)

    if isinstance(config, LegacyConfig):
        return {
            "source": config.source,
            "method": config.method,
            "tiers": _tiers_payload(config.tiers),
        }

    data = {
        "source": config.source,
        "profile_id": config.profile_id,
        "profile_name": config.profile_name,
    }
    if config.mode is ApplicationMode.FLAT and len(config.tiers) == 1:
        rate = config.tiers[0].rate
        if isinstance(rate, FlatFeeRate):
            data.update(method="FLAT_FEE", flat_fee=str(rate.amount))
        else:
            data.update(method="PERCENTAGE", flat_percentage=str(rate.percent))
        return data

    method = "PROGRESSIVE" if config.mode is ApplicationMode.FLAT else config.mode.value
    data.update(method=method, tiers=_tiers_payload(config.tiers))
    return data


# ---------------------------------------------------------------------------
# Input -> tiers (SET)
# ---------------------------------------------------------------------------

def _optional_int(value, label):
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{label} invalide : {value!r}.")


def _parse_tier(raw: dict, index: int) -> tuple[ResolvedTier, Optional[int]]:
    level = index + 1
    minimum = _optional_int(raw.get("min"), f"Palier {level} : minimum")
    if minimum is None:
        raise ConfigurationError(f"Palier {level} : le minimum est obligatoire.")
    maximum = _optional_int(raw.get("max"), f"Palier {level} : maximum")

    kind = raw.get("type", "percentage")
    unused = {"percentage": "flat_fee", "flat": "percentage"}.get(kind)
    if unused and raw.get(unused) not in (None, ""):
        raise ConfigurationError(f"Palier {level} : un seul type de taux est autorise.")
    try:
        if kind == "percentage":
            rate = rate_from_fields(percent=to_decimal(raw.get("percentage")))
        elif kind == "flat":
            rate = rate_from_fields(flat_fee=to_decimal(raw.get("flat_fee")))
        else:
            raise ConfigurationError(f"Palier {level} : type de taux inconnu ({kind!r}).")
    except ValueError as exc:
        if isinstance(exc, ConfigurationError):
            raise
        raise ConfigurationError(f"Palier {level} : taux invalide.") from exc
    return ResolvedTier(level=level, min_sessions=minimum, rate=rate), maximum


def build_tiers(method, tiers=None, flat_fee=None, flat_percentage=None) -> list[ResolvedTier]:
    """Validated tier table for one of the input methods."""
    if method not in INPUT_METHODS:
        raise ConfigurationError(f"Methode de commission inconnue : {method!r}.")

    try:
        if method == "FLAT_FEE":
            fee = to_decimal(flat_fee if flat_fee is not None else settings.DEFAULT_FLAT_FEE)
            return validate_tiers([ResolvedTier(level=1, min_sessions=1, rate=FlatFeeRate(fee))])
        if method == "PERCENTAGE":
            percent = to_decimal(
                flat_percentage if flat_percentage is not None else settings.DEFAULT_COMMISSION_PERCENT
            )
            return validate_tiers([ResolvedTier(level=1, min_sessions=1, rate=PercentRate(percent))])
    except ConfigurationError:
        raise
    except ValueError as exc:
        raise ConfigurationError("Taux de commission invalide.") from exc

    if not tiers:
        raise ConfigurationError("Au moins un palier est requis.")
    parsed = [_parse_tier(raw, index) for index, raw in enumerate(tiers)]
    resolved = validate_tiers([tier for tier, _maximum in parsed])
    # Stored tiers are contiguous; a declared maximum must close on the next minimum.
    for (tier, maximum), following in zip(parsed, resolved[1:]):
        if maximum is not None and maximum != following.min_sessions - 1:
            raise ConfigurationError(
                f"Palier {tier.level} : le maximum doit etre {following.min_sessions - 1} "
                "(les paliers doivent etre contigus)."
            )
    return resolved


# ---------------------------------------------------------------------------
# set_commission_config
# ---------------------------------------------------------------------------

def set_commission_config(
    *,
    organization_id,
    actor,
    method,
    tiers=None,
    flat_fee=None,
    flat_percentage=None,
) -> CurrentConfig:
    """Replace the organization's default commission configuration.

    The profile update and the delete/recreate of its tiers happen in one
    transaction, under a lock on the organization row, so readers never see
    a profile without tiers. A new default profile is assigned to every
    trainer of the organization. The legacy table is then mirrored on a
    best-effort basis (see ``commissions.legacy``).

    The mirror runs after the organization lock is released, so two
    concurrent calls may leave the legacy table holding the configuration
    that committed first. The current tables are always the source of truth.
    """
    from accounts.models import User
    from organizations.models import Organization

    if actor is None or not getattr(actor, "can_manage_finances", False):
        raise Forbidden("Seuls les administrateurs et responsables peuvent modifier les commissions.")
    if str(actor.organization_id) != str(organization_id):
        raise Forbidden("Vous ne pouvez pas modifier les commissions d'une autre organisation.")

    resolved = build_tiers(method, tiers=tiers, flat_fee=flat_fee, flat_percentage=flat_percentage)
    is_flat = method in ("FLAT_FEE", "PERCENTAGE")
    profile_fields = {
        "calculation_method": (
            CommissionProfile.CalculationMethod.FLAT if is_flat
            else CommissionProfile.CalculationMethod.PROGRESSIVE
        ),
        "application_mode": (
            CommissionProfile.ApplicationMode.GRADUATED if method == "GRADUATED"
            else CommissionProfile.ApplicationMode.PROGRESSIVE
        ),
        "trigger_type": (
            CommissionProfile.TriggerType.NONE if is_flat
            else CommissionProfile.TriggerType.SESSION_COUNT
        ),
    }

    with transaction.atomic():
        try:
            organization = Organization.objects.select_for_update().get(pk=organization_id)
        except (Organization.DoesNotExist, DjangoValidationError):
            raise NotFound("Organisation introuvable.")

        profile = _default_profile(organization.pk)
        created = profile is None
        if created:
            profile = CommissionProfile.objects.create(
                organization=organization,
                name=DEFAULT_PROFILE_NAME,
                is_default=True,
                is_active=True,
                **profile_fields,
            )
        else:
            for name, value in profile_fields.items():
                setattr(profile, name, value)
            profile.save(update_fields=list(profile_fields) + ["updated_at"])
            profile.tiers.all().delete()

        CommissionTier.objects.bulk_create(
            [
                CommissionTier(
                    profile=profile,
                    tier_level=tier.level,
                    session_threshold=tier.min_sessions,
                    session_commission_percent=(
                        tier.rate.percent if isinstance(tier.rate, PercentRate) else None
                    ),
                    session_flat_fee=tier.rate.amount if isinstance(tier.rate, FlatFeeRate) else None,
                )
                for tier in resolved
            ]
        )

        if created:
            assigned = User.objects.filter(
                organization=organization,
                role=User.Role.TRAINER,
            ).update(commission_profile=profile)
            logger.info(
                "Default commission profile %s created for organization=%s (%d trainers)",
                profile.pk,
                organization.pk,
                assigned,
            )

    logger.info(
        "Commission config saved organization=%s method=%s tiers=%d",
        organization_id,
        method,
        len(resolved),
    )
    legacy.write_legacy_tiers(organization_id, method, resolved)
    return config_from_profile(profile)
