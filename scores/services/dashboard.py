from __future__ import annotations

import logging
from datetime import date, datetime

from django.utils import timezone

from ..repository import ScoreRepository
from .aggregator import UnifiedResultsService
from .entry_service import OperationResult
from .handicap import HandicapCalculator
from .medals import MedalTallyService
from .normalizer import SourceType
from .personal_bests import PersonalBestTracker
from .shooter_statistics import ShooterStatisticsService
from .statistics import StatisticsCalculator, as_date

logger = logging.getLogger(__name__)

MEMBER_NOT_FOUND = "Medlemmen finns inte."


def _statistic_to_dict(statistic) -> dict:
    return {
        "weapon_class": statistic.weapon_class,
        "discipline": statistic.discipline,
        "completed_matches": statistic.completed_matches,
        "total_series_count": statistic.total_series_count,
        "total_series_points": statistic.total_series_points,
        "average_per_series": round(statistic.average_per_series, 2),
        "last_calculated": statistic.last_calculated.isoformat() if statistic.last_calculated else None,
    }


class DashboardService:
    """Read side of the engine: everything the member dashboard shows."""

    def __init__(
        self,
        repository=ScoreRepository,
        results: UnifiedResultsService | None = None,
        medals: MedalTallyService | None = None,
        statistics: ShooterStatisticsService | None = None,
        handicap: HandicapCalculator | None = None,
    ):
        self.repository = repository
        self.results = results or UnifiedResultsService(repository)
        self.medals = medals or MedalTallyService(repository)
        self.statistics = statistics or ShooterStatisticsService(repository)
        self.handicap = handicap or HandicapCalculator()

    def get_results(self, member_id: int, limit: int | None = None, skip: int | None = None) -> OperationResult:
        try:
            if not self.repository.member_exists(member_id):
                return OperationResult(False, MEMBER_NOT_FOUND)
            entries = self.results.get_member_results(member_id, limit=limit, skip=skip)
        except Exception:
            logger.exception(f"Failed to load results for member {member_id}")
            return OperationResult(False, "Resultaten kunde inte hämtas.")
        return OperationResult(
            True,
            "",
            {"results": [entry.to_dict() for entry in entries], "count": len(entries)},
        )

    def get_statistics(self, member_id: int, now: date | datetime | None = None) -> OperationResult:
        try:
            if not self.repository.member_exists(member_id):
                return OperationResult(False, MEMBER_NOT_FOUND)
            data = self._build_statistics(member_id, as_date(now or timezone.localdate()))
        except Exception:
            logger.exception(f"Failed to build statistics for member {member_id}")
            return OperationResult(False, "Statistiken kunde inte hämtas.")
        return OperationResult(True, "", data)

    def get_personal_bests(
        self, member_id: int, weapon_class: str | None = None, include_competitions: bool = True
    ) -> OperationResult:
        try:
            if not self.repository.member_exists(member_id):
                return OperationResult(False, MEMBER_NOT_FOUND)
            entries = PersonalBestTracker.filter_entries(
                self.results.get_member_results(member_id),
                weapon_class=weapon_class.upper() if weapon_class else None,
                include_competitions=include_competitions,
            )
            bests = PersonalBestTracker.compute_bests(entries)
        except Exception:
            logger.exception(f"Failed to compute personal bests for member {member_id}")
            return OperationResult(False, "Personliga rekord kunde inte hämtas.")
        return OperationResult(
            True,
            "",
            {
                weapon_class: [best.to_dict() for best in items]
                for weapon_class, items in PersonalBestTracker.group_by_weapon_class(bests).items()
            },
        )

    def _build_statistics(self, member_id: int, today: date) -> dict:
        results = self.results.get_member_results(member_id)
        training = [e for e in results if e.source_type == SourceType.TRAINING]
        competition = [e for e in results if e.source_type != SourceType.TRAINING]

        bests = PersonalBestTracker.compute_bests(results)
        years = StatisticsCalculator.available_years(results, today)
        shooter_statistics = self.statistics.get_all_statistics(member_id)

        return {
            "training_stats": StatisticsCalculator.calculate(training, today).to_dict(),
            "competition_stats": StatisticsCalculator.calculate(competition, today).to_dict(),
            "combined_stats": StatisticsCalculator.calculate(results, today).to_dict(),
            "personal_bests": [
                best.to_dict()
                for best in sorted(
                    bests.values(), key=lambda pb: (pb.weapon_class, pb.series_count, pb.is_competition)
                )
            ],
            "personal_bests_by_class": {
                weapon_class: [best.to_dict() for best in items]
                for weapon_class, items in PersonalBestTracker.group_by_weapon_class(bests).items()
            },
            "personal_bests_by_series_count": [
                best.to_dict() for best in PersonalBestTracker.bests_for_standard_series_counts(bests)
            ],
            "medal_stats": self.medals.tally(member_id, today.year).to_dict(),
            "medal_stats_by_year": {
                year: tally.to_dict() for year, tally in self.medals.tally_by_year(member_id, years).items()
            },
            "available_years": years,
            "monthly_series": StatisticsCalculator.monthly_series(results),
            "weapon_class_breakdown": StatisticsCalculator.weapon_class_breakdown(results),
            "shooter_statistics": [_statistic_to_dict(s) for s in shooter_statistics],
            "handicap": self._handicap_for(member_id, shooter_statistics),
        }

    def _handicap_for(self, member_id: int, shooter_statistics) -> dict | None:
        member = self.repository.get_member(member_id)
        try:
            # Fails before any statistic is looked at when the class is unset.
            self.handicap.get_provisional_average(member.shooter_class)
            return {
                statistic.weapon_class: self.handicap.calculate_handicap(
                    statistic, member.shooter_class
                ).to_dict()
                for statistic in shooter_statistics
            }
        except ValueError as exc:
            logger.debug(f"No handicap for member {member_id}: {exc}")
            return None
