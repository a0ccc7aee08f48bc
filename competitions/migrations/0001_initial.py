import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("scores", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Competition",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("competition_date", models.DateField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["-competition_date", "name"],
                "verbose_name": "Tävling",
                "verbose_name_plural": "Tävlingar",
            },
        ),
        migrations.CreateModel(
            name="CompetitionResult",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "name",
                    models.CharField(
                        default="Resultat",
                        help_text="Dokument med namnet 'Resultat' räknas som officiellt slutresultat.",
                        max_length=150,
                    ),
                ),
                ("result_data", models.TextField(blank=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "competition",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="result_documents",
                        to="competitions.competition",
                    ),
                ),
            ],
            options={
                "ordering": ["competition", "name"],
                "verbose_name": "Resultatdokument",
                "verbose_name_plural": "Resultatdokument",
            },
        ),
        migrations.CreateModel(
            name="CompetitionParticipant",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("shooting_class", models.CharField(blank=True, max_length=30)),
                (
                    "competition",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="participants",
                        to="competitions.competition",
                    ),
                ),
                (
                    "member",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="competition_participations",
                        to="scores.member",
                    ),
                ),
            ],
            options={
                "ordering": ["competition", "member"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("competition", "member"),
                        name="unique_competition_participant",
                    )
                ],
            },
        ),
    ]
