from django.db import models

from core.models import TimeStampedModel


class Organization(TimeStampedModel):
    """A personal-training business (tenant) owning clients, packages and trainers."""

    class CommissionMethod(models.TextChoices):
        FLAT = "FLAT", "Taux unique"
        PROGRESSIVE = "PROGRESSIVE", "Progressif"
        GRADUATED = "GRADUATED", "Par tranches"

    name = models.CharField("nom", max_length=255)
    slug = models.SlugField("identifiant", max_length=80, unique=True)
    currency = models.CharField("devise", max_length=10, default="EUR")
    is_active = models.BooleanField("active", default=True)
    # Read only by code paths still on the legacy commission table.
    commission_method = models.CharField(
        "methode de commission (ancienne)",
        max_length=20,
        choices=CommissionMethod.choices,
        default=CommissionMethod.PROGRESSIVE,
    )

    class Meta:
        ordering = ["name"]
        verbose_name = "organisation"
        verbose_name_plural = "organisations"

    def __str__(self):
        return self.name
