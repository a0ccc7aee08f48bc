from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal

from club_project.settings.config import HANDICAP, HandicapConfig

from ..models import ShooterStatistic


@dataclass(frozen=True)
class HandicapProfile:
    effective_average: float
    handicap_per_series: float
    is_provisional: bool
    completed_matches: int
    matches_until_full_handicap: int
    actual_average: float
    provisional_average: float

    def to_dict(self) -> dict:
        return asdict(self)


class HandicapCalculator:
    """
    Pure handicap arithmetic, no database access.

    The handicap is the distance between a reference series score and the
    shooter's effective average. New shooters start from a provisional
    average for their class that converges to their actual average over
    the first ``REQUIRED_MATCHES`` matches.
    """

    def __init__(self, config: HandicapConfig = HANDICAP):
        self.config = config

    @staticmethod
    def round_to_quarter(value: float) -> float:
        """Nearest 0.25, halves rounded away from zero."""
        quarters = (Decimal(str(value)) * 4).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return float(quarters / 4)

    def get_provisional_average(self, shooter_class: str | None) -> float:
        if not shooter_class:
            raise ValueError("Shooter class must be set before calculating handicap.")
        try:
            return self.config.PROVISIONAL_AVERAGES[shooter_class]
        except KeyError:
            raise ValueError(f"Unknown shooter class: {shooter_class}") from None

    def get_effective_average(
        self, actual_average: float, completed_matches: int, provisional_average: float
    ) -> float:
        required = self.config.REQUIRED_MATCHES
        if completed_matches >= required:
            return actual_average
        if completed_matches <= 0:
            return provisional_average
        remaining = required - completed_matches
        weighted = provisional_average * remaining + actual_average * completed_matches
        return round(weighted / required, 2)

    def calculate_handicap(
        self, statistic: ShooterStatistic | None, shooter_class: str | None
    ) -> HandicapProfile:
        """Raises ``ValueError`` when the shooter class is missing or unknown."""
        completed = statistic.completed_matches if statistic else 0
        actual = statistic.average_per_series if statistic else 0.0
        provisional = self.get_provisional_average(shooter_class)

        is_provisional = completed < self.config.REQUIRED_MATCHES
        effective = (
            self.get_effective_average(actual, completed, provisional) if is_provisional else actual
        )
        # Capped from above only; strong shooters get a negative handicap.
        handicap = min(self.config.REFERENCE_SERIES_SCORE - effective, self.config.MAX_HANDICAP_PER_SERIES)

        return HandicapProfile(
            effective_average=round(effective, 2),
            handicap_per_series=self.round_to_quarter(handicap),
            is_provisional=is_provisional,
            completed_matches=completed,
            matches_until_full_handicap=(
                self.config.REQUIRED_MATCHES - completed if is_provisional else 0
            ),
            actual_average=round(actual, 2),
            provisional_average=provisional,
        )

    def series_final_score(self, raw_series_score: float, handicap_per_series: float) -> int:
        """Handicapped score of one series, capped at the series maximum and rounded."""
        final = min(raw_series_score + handicap_per_series, self.config.MAX_SCORE_PER_SERIES)
        return round(final)

    def match_final_score(
        self, raw_total: float, handicap_per_series: float, series_count: int
    ) -> int:
        """
        Handicapped match total, capped at the match maximum.

        Part of the public calculator API for scoring handicapped matches;
        the dashboard only reports the handicap itself.
        """
        max_total = self.config.MAX_SCORE_PER_SERIES * series_count
        final = min(raw_total + handicap_per_series * series_count, max_total)
        return round(final)
