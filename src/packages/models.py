"""Models for the packages app: session packages, their payments and sessions."""
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from core.models import TimeStampedModel


class Package(TimeStampedModel):
    """A bundle of training sessions sold to one client for a fixed price."""

    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.CASCADE,
        related_name="packages",
        verbose_name="organisation",
    )
    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="packages",
        verbose_name="client",
    )
    trainer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="coached_packages",
        verbose_name="coach",
    )
    name = models.CharField("nom", max_length=255)
    total_value = models.DecimalField(
        "valeur totale",
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
    )
    total_sessions = models.PositiveIntegerField(
        "nombre de seances",
        validators=[MinValueValidator(1)],
    )
    session_value = models.DecimalField(
        "valeur par seance",
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Laisser vide pour utiliser valeur totale / nombre de seances.",
    )
    active = models.BooleanField("actif", default=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "forfait"
        verbose_name_plural = "forfaits"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_sessions__gt=0),
                name="package_total_sessions_positive",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.client})"

    @property
    def effective_session_value(self) -> Decimal:
        if self.session_value is not None:
            return self.session_value
        if not self.total_sessions:
            return Decimal("0.00")
        return (self.total_value / self.total_sessions).quantize(Decimal("0.01"))


class Payment(TimeStampedModel):
    """A (possibly partial) payment against a package."""

    class Method(models.TextChoices):
        CARD = "CARD", "Carte bancaire"
        BANK_TRANSFER = "BANK_TRANSFER", "Virement bancaire"
        OTHER = "OTHER", "Autre"

    package = models.ForeignKey(
        Package,
        on_delete=models.CASCADE,
        related_name="payments",
        verbose_name="forfait",
    )
    amount = models.DecimalField(
        "montant",
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    payment_date = models.DateField("date du paiement", default=timezone.localdate)
    method = models.CharField(
        "mode de paiement",
        max_length=20,
        choices=Method.choices,
        default=Method.CARD,
    )
    sales_attributed_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="attributed_payments",
        verbose_name="vente attribuee a",
    )
    sales_attributed_to_2 = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="co_attributed_payments",
        verbose_name="vente co-attribuee a",
    )
    notes = models.TextField("notes", blank=True, default="")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="recorded_payments",
        verbose_name="enregistre par",
    )

    class Meta:
        ordering = ["-payment_date", "-created_at"]
        verbose_name = "paiement"
        verbose_name_plural = "paiements"

    def __str__(self):
        return f"{self.get_method_display()} - {self.amount}"


class TrainingSession(TimeStampedModel):
    """A logged session. Creation and cancellation happen outside the ledger."""

    package = models.ForeignKey(
        Package,
        on_delete=models.CASCADE,
        related_name="sessions",
        verbose_name="forfait",
    )
    trainer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="training_sessions",
        verbose_name="coach",
    )
    session_date = models.DateTimeField("date de la seance", default=timezone.now)
    session_value = models.DecimalField(
        "valeur de la seance",
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    cancelled = models.BooleanField("annulee", default=False)
    validated = models.BooleanField(
        "validee",
        default=False,
        help_text="Confirmee par le client. Seules les seances validees ouvrent droit a commission.",
    )
    validated_at = models.DateTimeField("validee le", null=True, blank=True)

    class Meta:
        ordering = ["-session_date"]
        verbose_name = "seance"
        verbose_name_plural = "seances"
        indexes = [
            models.Index(fields=["trainer", "session_date"], name="idx_session_trainer_date"),
            models.Index(fields=["package", "cancelled"], name="idx_session_package_cancel"),
        ]

    def __str__(self):
        return f"Seance {self.session_date:%Y-%m-%d} ({self.package.name})"
