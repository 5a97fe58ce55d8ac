from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from core.models import TimeStampedModel


class CommissionProfile(TimeStampedModel):
    """Commission rules of an organization (or of a subset of its trainers)."""

    class CalculationMethod(models.TextChoices):
        FLAT = "FLAT", "Taux unique"
        PROGRESSIVE = "PROGRESSIVE", "Par paliers"

    class ApplicationMode(models.TextChoices):
        PROGRESSIVE = "PROGRESSIVE", "Progressif (palier atteint sur toutes les seances)"
        GRADUATED = "GRADUATED", "Par tranches (chaque palier sur sa tranche)"

    class TriggerType(models.TextChoices):
        NONE = "NONE", "Aucun"
        SESSION_COUNT = "SESSION_COUNT", "Nombre de seances"

    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.CASCADE,
        related_name="commission_profiles",
        verbose_name="organisation",
    )
    name = models.CharField("nom", max_length=120)
    description = models.TextField("description", blank=True, default="")
    is_default = models.BooleanField("profil par defaut", default=False)
    is_active = models.BooleanField("actif", default=True)
    calculation_method = models.CharField(
        "methode de calcul",
        max_length=20,
        choices=CalculationMethod.choices,
        default=CalculationMethod.PROGRESSIVE,
    )
    application_mode = models.CharField(
        "application des paliers",
        max_length=20,
        choices=ApplicationMode.choices,
        default=ApplicationMode.PROGRESSIVE,
        help_text="Ignore quand la methode de calcul est a taux unique.",
    )
    trigger_type = models.CharField(
        "declencheur de palier",
        max_length=20,
        choices=TriggerType.choices,
        default=TriggerType.SESSION_COUNT,
    )

    class Meta:
        ordering = ["organization", "-is_default", "name"]
        verbose_name = "profil de commission"
        verbose_name_plural = "profils de commission"
        constraints = [
            models.UniqueConstraint(
                fields=["organization"],
                condition=models.Q(is_default=True),
                name="uniq_default_commission_profile_per_org",
            ),
        ]

    def __str__(self):
        return self.name


class CommissionTier(TimeStampedModel):
    """One tier of a profile: a session threshold and exactly one rate kind."""

    profile = models.ForeignKey(
        CommissionProfile,
        on_delete=models.CASCADE,
        related_name="tiers",
        verbose_name="profil",
    )
    tier_level = models.PositiveSmallIntegerField("niveau")  # 1 = lowest
    session_threshold = models.PositiveIntegerField("seuil de seances", default=0)
    session_commission_percent = models.DecimalField(
        "commission par seance (%)",
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )
    session_flat_fee = models.DecimalField(
        "montant fixe par seance",
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0"))],
    )

    class Meta:
        ordering = ["profile", "tier_level"]
        verbose_name = "palier de commission"
        verbose_name_plural = "paliers de commission"
        constraints = [
            models.UniqueConstraint(
                fields=["profile", "tier_level"],
                name="uniq_commission_tier_level_per_profile",
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(session_commission_percent__isnull=False, session_flat_fee__isnull=True)
                    | models.Q(session_commission_percent__isnull=True, session_flat_fee__isnull=False)
                ),
                name="commission_tier_single_rate_kind",
            ),
        ]

    def __str__(self):
        return f"{self.profile} - palier {self.tier_level}"


class LegacyCommissionTier(TimeStampedModel):
    """Organization-level percentage table kept for code still reading it."""

    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.CASCADE,
        related_name="legacy_commission_tiers",
        verbose_name="organisation",
    )
    min_sessions = models.PositiveIntegerField("seances min")
    max_sessions = models.PositiveIntegerField("seances max", null=True, blank=True)
    percentage = models.DecimalField(
        "taux (fraction)",
        max_digits=5,
        decimal_places=4,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("1"))],
        help_text="0.25 = 25 %.",
    )

    class Meta:
        ordering = ["organization", "min_sessions"]
        verbose_name = "palier de commission (ancien)"
        verbose_name_plural = "paliers de commission (ancien)"

    def __str__(self):
        upper = self.max_sessions if self.max_sessions is not None else "+"
        return f"{self.min_sessions}-{upper} : {self.percentage}"


class CommissionCalculation(TimeStampedModel):
    """Commission computed for one trainer over one period, with frozen tier data."""

    trainer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="commission_calculations",
        verbose_name="coach",
    )
    profile = models.ForeignKey(
        CommissionProfile,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="calculations",
        verbose_name="profil",
    )
    period_start = models.DateField("debut de periode")
    period_end = models.DateField("fin de periode")
    session_count = models.PositiveIntegerField("seances validees", default=0)
    session_value = models.DecimalField(
        "valeur moyenne par seance",
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    method = models.CharField("methode", max_length=20)
    tier_reached = models.PositiveSmallIntegerField("palier atteint", null=True, blank=True)
    commission_amount = models.DecimalField(
        "commission",
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    calculation_snapshot = models.JSONField("detail du calcul", default=dict, blank=True)

    class Meta:
        ordering = ["-period_end", "trainer"]
        verbose_name = "calcul de commission"
        verbose_name_plural = "calculs de commission"
        constraints = [
            models.UniqueConstraint(
                fields=["trainer", "period_start", "period_end"],
                name="uniq_commission_calc_per_period",
            ),
        ]

    def __str__(self):
        return f"{self.trainer} {self.period_start:%Y-%m} : {self.commission_amount}"
