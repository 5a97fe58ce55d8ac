import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Organization",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="cree le")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
                ("name", models.CharField(max_length=255, verbose_name="nom")),
                ("slug", models.SlugField(max_length=80, unique=True, verbose_name="identifiant")),
                ("currency", models.CharField(default="EUR", max_length=10, verbose_name="devise")),
                ("is_active", models.BooleanField(default=True, verbose_name="active")),
                (
                    "commission_method",
                    models.CharField(
                        choices=[
                            ("FLAT", "Taux unique"),
                            ("PROGRESSIVE", "Progressif"),
                            ("GRADUATED", "Par tranches"),
                        ],
                        default="PROGRESSIVE",
                        max_length=20,
                        verbose_name="methode de commission (ancienne)",
                    ),
                ),
            ],
            options={
                "verbose_name": "organisation",
                "verbose_name_plural": "organisations",
                "ordering": ["name"],
            },
        ),
    ]
