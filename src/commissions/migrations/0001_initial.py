import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models

TIMESTAMP_FIELDS = [
    ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
    ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="cree le")),
    ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("organizations", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="CommissionProfile",
            fields=[
                *TIMESTAMP_FIELDS,
                ("name", models.CharField(max_length=120, verbose_name="nom")),
                ("description", models.TextField(blank=True, default="", verbose_name="description")),
                ("is_default", models.BooleanField(default=False, verbose_name="profil par defaut")),
                ("is_active", models.BooleanField(default=True, verbose_name="actif")),
                (
                    "calculation_method",
                    models.CharField(
                        choices=[("FLAT", "Taux unique"), ("PROGRESSIVE", "Par paliers")],
                        default="PROGRESSIVE",
                        max_length=20,
                        verbose_name="methode de calcul",
                    ),
                ),
                (
                    "application_mode",
                    models.CharField(
                        choices=[
                            ("PROGRESSIVE", "Progressif (palier atteint sur toutes les seances)"),
                            ("GRADUATED", "Par tranches (chaque palier sur sa tranche)"),
                        ],
                        default="PROGRESSIVE",
                        help_text="Ignore quand la methode de calcul est a taux unique.",
                        max_length=20,
                        verbose_name="application des paliers",
                    ),
                ),
                (
                    "trigger_type",
                    models.CharField(
                        choices=[("NONE", "Aucun"), ("SESSION_COUNT", "Nombre de seances")],
                        default="SESSION_COUNT",
                        max_length=20,
                        verbose_name="declencheur de palier",
                    ),
                ),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="commission_profiles",
                        to="organizations.organization",
                        verbose_name="organisation",
                    ),
                ),
            ],
            options={
                "verbose_name": "profil de commission",
                "verbose_name_plural": "profils de commission",
                "ordering": ["organization", "-is_default", "name"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(is_default=True),
                        fields=("organization",),
                        name="uniq_default_commission_profile_per_org",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CommissionTier",
            fields=[
                *TIMESTAMP_FIELDS,
                ("tier_level", models.PositiveSmallIntegerField(verbose_name="niveau")),
                ("session_threshold", models.PositiveIntegerField(default=0, verbose_name="seuil de seances")),
                (
                    "session_commission_percent",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=5,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0")),
                            django.core.validators.MaxValueValidator(Decimal("100")),
                        ],
                        verbose_name="commission par seance (%)",
                    ),
                ),
                (
                    "session_flat_fee",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=14,
                        null=True,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                        verbose_name="montant fixe par seance",
                    ),
                ),
                (
                    "profile",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tiers",
                        to="commissions.commissionprofile",
                        verbose_name="profil",
                    ),
                ),
            ],
            options={
                "verbose_name": "palier de commission",
                "verbose_name_plural": "paliers de commission",
                "ordering": ["profile", "tier_level"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("profile", "tier_level"),
                        name="uniq_commission_tier_level_per_profile",
                    ),
                    models.CheckConstraint(
                        condition=(
                            models.Q(session_commission_percent__isnull=False, session_flat_fee__isnull=True)
                            | models.Q(session_commission_percent__isnull=True, session_flat_fee__isnull=False)
                        ),
                        name="commission_tier_single_rate_kind",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LegacyCommissionTier",
            fields=[
                *TIMESTAMP_FIELDS,
                ("min_sessions", models.PositiveIntegerField(verbose_name="seances min")),
                ("max_sessions", models.PositiveIntegerField(blank=True, null=True, verbose_name="seances max")),
                (
                    "percentage",
                    models.DecimalField(
                        decimal_places=4,
                        help_text="0.25 = 25 %.",
                        max_digits=5,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0")),
                            django.core.validators.MaxValueValidator(Decimal("1")),
                        ],
                        verbose_name="taux (fraction)",
                    ),
                ),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="legacy_commission_tiers",
                        to="organizations.organization",
                        verbose_name="organisation",
                    ),
                ),
            ],
            options={
                "verbose_name": "palier de commission (ancien)",
                "verbose_name_plural": "paliers de commission (ancien)",
                "ordering": ["organization", "min_sessions"],
            },
        ),
    ]
