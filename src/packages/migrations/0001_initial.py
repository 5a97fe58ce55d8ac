import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("organizations", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Package",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="cree le")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
                ("name", models.CharField(max_length=255, verbose_name="nom")),
                (
                    "total_value",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                        verbose_name="valeur totale",
                    ),
                ),
                (
                    "total_sessions",
                    models.PositiveIntegerField(
                        validators=[django.core.validators.MinValueValidator(1)],
                        verbose_name="nombre de seances",
                    ),
                ),
                (
                    "session_value",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Laisser vide pour utiliser valeur totale / nombre de seances.",
                        max_digits=14,
                        null=True,
                        verbose_name="valeur par seance",
                    ),
                ),
                ("active", models.BooleanField(default=True, verbose_name="actif")),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="packages",
                        to="organizations.organization",
                        verbose_name="organisation",
                    ),
                ),
                (
                    "client",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="packages",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="client",
                    ),
                ),
                (
                    "trainer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="coached_packages",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="coach",
                    ),
                ),
            ],
            options={
                "verbose_name": "forfait",
                "verbose_name_plural": "forfaits",
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(total_sessions__gt=0),
                        name="package_total_sessions_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="cree le")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.01"))],
                        verbose_name="montant",
                    ),
                ),
                (
                    "payment_date",
                    models.DateField(default=django.utils.timezone.localdate, verbose_name="date du paiement"),
                ),
                (
                    "method",
                    models.CharField(
                        choices=[
                            ("CARD", "Carte bancaire"),
                            ("BANK_TRANSFER", "Virement bancaire"),
                            ("OTHER", "Autre"),
                        ],
                        default="CARD",
                        max_length=20,
                        verbose_name="mode de paiement",
                    ),
                ),
                ("notes", models.TextField(blank=True, default="", verbose_name="notes")),
                (
                    "package",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payments",
                        to="packages.package",
                        verbose_name="forfait",
                    ),
                ),
                (
                    "sales_attributed_to",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="attributed_payments",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="vente attribuee a",
                    ),
                ),
                (
                    "sales_attributed_to_2",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="co_attributed_payments",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="vente co-attribuee a",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="recorded_payments",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="enregistre par",
                    ),
                ),
            ],
            options={
                "verbose_name": "paiement",
                "verbose_name_plural": "paiements",
                "ordering": ["-payment_date", "-created_at"],
            },
        ),
        migrations.CreateModel(
            name="TrainingSession",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="cree le")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
                (
                    "session_date",
                    models.DateTimeField(default=django.utils.timezone.now, verbose_name="date de la seance"),
                ),
                (
                    "session_value",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=14,
                        verbose_name="valeur de la seance",
                    ),
                ),
                ("cancelled", models.BooleanField(default=False, verbose_name="annulee")),
                (
                    "validated",
                    models.BooleanField(
                        default=False,
                        help_text="Confirmee par le client. Seules les seances validees ouvrent droit a commission.",
                        verbose_name="validee",
                    ),
                ),
                ("validated_at", models.DateTimeField(blank=True, null=True, verbose_name="validee le")),
                (
                    "package",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="sessions",
                        to="packages.package",
                        verbose_name="forfait",
                    ),
                ),
                (
                    "trainer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="training_sessions",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="coach",
                    ),
                ),
            ],
            options={
                "verbose_name": "seance",
                "verbose_name_plural": "seances",
                "ordering": ["-session_date"],
                "indexes": [
                    models.Index(fields=["trainer", "session_date"], name="idx_session_trainer_date"),
                    models.Index(fields=["package", "cancelled"], name="idx_session_package_cancel"),
                ],
            },
        ),
    ]
