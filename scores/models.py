from django.core.validators import MinValueValidator
from django.db import models


WEAPON_CLASS_CHOICES = [
    ("A", "A-vapen"),
    ("B", "B-vapen"),
    ("C", "C-vapen"),
    ("R", "R-vapen"),
    ("P", "P-vapen"),
    ("M", "M-vapen"),
    ("L", "L-vapen"),
]
WEAPON_CLASSES = [code for code, _ in WEAPON_CLASS_CHOICES]


class Member(models.Model):
    """A club member whose scores are tracked."""

    SHOOTER_CLASS_CHOICES = [
        ("Klass 1 - Nybörjare", "Klass 1 - Nybörjare"),
        ("Klass 2 - Guldmärkesskytt", "Klass 2 - Guldmärkesskytt"),
        ("Klass 3 - Riksmästare", "Klass 3 - Riksmästare"),
    ]

    username = models.CharField(max_length=150, unique=True)
    name = models.CharField(max_length=150)
    shooter_class = models.CharField(
        max_length=50,
        choices=SHOOTER_CLASS_CHOICES,
        blank=True,
        help_text="Används för preliminärt handikapp.",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        verbose_name = "Medlem"
        verbose_name_plural = "Medlemmar"

    def __str__(self) -> str:
        return self.name


class RawScoreEntry(models.Model):
    """
    A self-logged training session or external competition result.

    ``series`` holds the ordered per-series payload as JSON; ``total_score``
    and ``x_count`` are always recomputed from it on save.
    """

    MEDAL_CHOICES = [
        ("", "Ingen"),
        ("S", "Silver"),
        ("B", "Brons"),
    ]

    member = models.ForeignKey(
        Member, on_delete=models.CASCADE, related_name="score_entries"
    )
    training_date = models.DateField()
    weapon_class = models.CharField(max_length=1, choices=WEAPON_CLASS_CHOICES)
    is_competition = models.BooleanField(
        default=False,
        help_text="Resultat från extern tävling som inte registreras i klubbens system.",
    )
    competition_place = models.PositiveIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1)]
    )
    competition_shooting_class = models.CharField(max_length=30, blank=True)
    competition_medal = models.CharField(
        max_length=1, choices=MEDAL_CHOICES, blank=True, default=""
    )
    series = models.JSONField(default=list)
    total_score = models.PositiveIntegerField(default=0, editable=False)
    x_count = models.PositiveIntegerField(default=0, editable=False)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-training_date", "-id"]
        indexes = [
            models.Index(fields=["member", "weapon_class", "training_date"], name="scores_raws_member__0c6f1e_idx"),
            models.Index(fields=["member", "training_date"], name="scores_raws_member__5a2b7d_idx"),
        ]
        verbose_name = "Resultatregistrering"
        verbose_name_plural = "Resultatregistreringar"

    def __str__(self) -> str:
        kind = "Tävling" if self.is_competition else "Träning"
        return (
            f"{self.training_date:%Y-%m-%d} - {kind} - {self.weapon_class}-vapen - "
            f"{self.series_count} serier - {self.total_score}p ({self.x_count} X)"
        )

    @property
    def series_count(self) -> int:
        return len(self.series or [])

    @property
    def average_score(self) -> float:
        return self.total_score / self.series_count if self.series_count else 0.0

    def calculate_totals(self) -> None:
        self.total_score = sum(int(item.get("total", 0)) for item in self.series or [])
        self.x_count = sum(int(item.get("x_count", 0)) for item in self.series or [])

    def save(self, *args, **kwargs):
        # Totals are derived data; never trust what was assigned.
        self.calculate_totals()
        if self.competition_medal:
            self.competition_medal = self.competition_medal.upper()
        super().save(*args, **kwargs)


class ShooterStatistic(models.Model):
    """
    Running RAW performance baseline per member and weapon class.

    Updated incrementally after each new entry and rebuilt from history
    after edits and deletions.
    """

    DISCIPLINE_PRECISION = "Precision"

    member = models.ForeignKey(
        Member, on_delete=models.CASCADE, related_name="shooter_statistics"
    )
    discipline = models.CharField(max_length=30, default=DISCIPLINE_PRECISION)
    weapon_class = models.CharField(max_length=1, choices=WEAPON_CLASS_CHOICES)
    completed_matches = models.PositiveIntegerField(default=0)
    total_series_count = models.PositiveIntegerField(default=0)
    total_series_points = models.PositiveIntegerField(default=0)
    average_per_series = models.FloatField(default=0.0)
    last_calculated = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["member", "weapon_class"]
        constraints = [
            models.UniqueConstraint(
                fields=["member", "discipline", "weapon_class"],
                name="unique_shooter_statistic",
            )
        ]
        verbose_name = "Skyttestatistik"
        verbose_name_plural = "Skyttestatistik"

    def __str__(self) -> str:
        return (
            f"{self.member} {self.weapon_class}: {self.completed_matches} matcher, "
            f"{self.average_per_series:.2f}p/serie"
        )
