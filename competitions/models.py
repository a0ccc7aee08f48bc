from django.db import models


class Competition(models.Model):
    """An official club competition whose results are published as documents."""

    name = models.CharField(max_length=200)
    competition_date = models.DateField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-competition_date", "name"]
        verbose_name = "Tävling"
        verbose_name_plural = "Tävlingar"

    def __str__(self) -> str:
        return f"{self.name} ({self.competition_date:%Y-%m-%d})"


class CompetitionResult(models.Model):
    """
    A result document attached to a competition.

    ``result_data`` is stored as raw JSON text because documents are
    authored elsewhere and may be incomplete or malformed.
    """

    FINAL_RESULTS_NAME = "Resultat"

    competition = models.ForeignKey(
        Competition, on_delete=models.CASCADE, related_name="result_documents"
    )
    name = models.CharField(
        max_length=150,
        default=FINAL_RESULTS_NAME,
        help_text="Dokument med namnet 'Resultat' räknas som officiellt slutresultat.",
    )
    result_data = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["competition", "name"]
        verbose_name = "Resultatdokument"
        verbose_name_plural = "Resultatdokument"

    def __str__(self) -> str:
        return f"{self.competition.name} – {self.name}"


class CompetitionParticipant(models.Model):
    """Participation index: which members took part in which competition."""

    competition = models.ForeignKey(
        Competition, on_delete=models.CASCADE, related_name="participants"
    )
    member = models.ForeignKey(
        "scores.Member", on_delete=models.CASCADE, related_name="competition_participations"
    )
    shooting_class = models.CharField(max_length=30, blank=True)

    class Meta:
        ordering = ["competition", "member"]
        constraints = [
            models.UniqueConstraint(
                fields=["competition", "member"],
                name="unique_competition_participant",
            )
        ]

    def __str__(self) -> str:
        return f"{self.member} @ {self.competition.name}"
