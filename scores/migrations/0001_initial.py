import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


WEAPON_CLASS_CHOICES = [
    ("A", "A-vapen"),
    ("B", "B-vapen"),
    ("C", "C-vapen"),
    ("R", "R-vapen"),
    ("P", "P-vapen"),
    ("M", "M-vapen"),
    ("L", "L-vapen"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Member",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("username", models.CharField(max_length=150, unique=True)),
                ("name", models.CharField(max_length=150)),
                (
                    "shooter_class",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("Klass 1 - Nybörjare", "Klass 1 - Nybörjare"),
                            ("Klass 2 - Guldmärkesskytt", "Klass 2 - Guldmärkesskytt"),
                            ("Klass 3 - Riksmästare", "Klass 3 - Riksmästare"),
                        ],
                        help_text="Används för preliminärt handikapp.",
                        max_length=50,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["name"],
                "verbose_name": "Medlem",
                "verbose_name_plural": "Medlemmar",
            },
        ),
        migrations.CreateModel(
            name="RawScoreEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("training_date", models.DateField()),
                ("weapon_class", models.CharField(choices=WEAPON_CLASS_CHOICES, max_length=1)),
                (
                    "is_competition",
                    models.BooleanField(
                        default=False,
                        help_text="Resultat från extern tävling som inte registreras i klubbens system.",
                    ),
                ),
                (
                    "competition_place",
                    models.PositiveIntegerField(
                        blank=True, null=True, validators=[django.core.validators.MinValueValidator(1)]
                    ),
                ),
                ("competition_shooting_class", models.CharField(blank=True, max_length=30)),
                (
                    "competition_medal",
                    models.CharField(
                        blank=True,
                        choices=[("", "Ingen"), ("S", "Silver"), ("B", "Brons")],
                        default="",
                        max_length=1,
                    ),
                ),
                ("series", models.JSONField(default=list)),
                ("total_score", models.PositiveIntegerField(default=0, editable=False)),
                ("x_count", models.PositiveIntegerField(default=0, editable=False)),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "member",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="score_entries",
                        to="scores.member",
                    ),
                ),
            ],
            options={
                "ordering": ["-training_date", "-id"],
                "verbose_name": "Resultatregistrering",
                "verbose_name_plural": "Resultatregistreringar",
                "indexes": [
                    models.Index(fields=["member", "weapon_class", "training_date"], name="scores_raws_member__0c6f1e_idx"),
                    models.Index(fields=["member", "training_date"], name="scores_raws_member__5a2b7d_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ShooterStatistic",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("discipline", models.CharField(default="Precision", max_length=30)),
                ("weapon_class", models.CharField(choices=WEAPON_CLASS_CHOICES, max_length=1)),
                ("completed_matches", models.PositiveIntegerField(default=0)),
                ("total_series_count", models.PositiveIntegerField(default=0)),
                ("total_series_points", models.PositiveIntegerField(default=0)),
                ("average_per_series", models.FloatField(default=0.0)),
                ("last_calculated", models.DateTimeField(auto_now=True)),
                (
                    "member",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="shooter_statistics",
                        to="scores.member",
                    ),
                ),
            ],
            options={
                "ordering": ["member", "weapon_class"],
                "verbose_name": "Skyttestatistik",
                "verbose_name_plural": "Skyttestatistik",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("member", "discipline", "weapon_class"),
                        name="unique_shooter_statistic",
                    )
                ],
            },
        ),
    ]
