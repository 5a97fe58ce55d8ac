import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("commissions", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="CommissionCalculation",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="cree le")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
                ("period_start", models.DateField(verbose_name="debut de periode")),
                ("period_end", models.DateField(verbose_name="fin de periode")),
                ("session_count", models.PositiveIntegerField(default=0, verbose_name="seances validees")),
                (
                    "session_value",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=14,
                        verbose_name="valeur moyenne par seance",
                    ),
                ),
                ("method", models.CharField(max_length=20, verbose_name="methode")),
                ("tier_reached", models.PositiveSmallIntegerField(blank=True, null=True, verbose_name="palier atteint")),
                (
                    "commission_amount",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=14,
                        verbose_name="commission",
                    ),
                ),
                ("calculation_snapshot", models.JSONField(blank=True, default=dict, verbose_name="detail du calcul")),
                (
                    "profile",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="calculations",
                        to="commissions.commissionprofile",
                        verbose_name="profil",
                    ),
                ),
                (
                    "trainer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="commission_calculations",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="coach",
                    ),
                ),
            ],
            options={
                "verbose_name": "calcul de commission",
                "verbose_name_plural": "calculs de commission",
                "ordering": ["-period_end", "trainer"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("trainer", "period_start", "period_end"),
                        name="uniq_commission_calc_per_period",
                    ),
                ],
            },
        ),
    ]
