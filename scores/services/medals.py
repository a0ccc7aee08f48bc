from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Iterable

from django.core.cache import cache

from club_project.settings.config import TIMING

from ..repository import ScoreRepository
from . import cache_keys
from .normalizer import find_member_shooters, parse_result_document

logger = logging.getLogger(__name__)

SILVER = "S"
BRONZE = "B"
MEDAL_POINTS = {SILVER: 2, BRONZE: 1}


@dataclass
class MedalTally:
    silver_count: int = 0
    bronze_count: int = 0

    @property
    def total_points(self) -> int:
        return self.silver_count * MEDAL_POINTS[SILVER] + self.bronze_count * MEDAL_POINTS[BRONZE]

    def add(self, grade: str | None) -> None:
        """Count one medal grade; anything but S/B (any case) is ignored."""
        normalized = grade.strip().upper() if isinstance(grade, str) else ""
        if normalized == SILVER:
            self.silver_count += 1
        elif normalized == BRONZE:
            self.bronze_count += 1

    def to_dict(self) -> dict:
        return {**asdict(self), "total_points": self.total_points}


class MedalTallyService:
    """
    Yearly standard-medal tally from two sources:

    * the member's own external competition entries (dated by the entry)
    * official result documents of competitions held that year
    """

    def __init__(self, repository=ScoreRepository):
        self.repository = repository

    def tally(self, member_id: int, year: int) -> MedalTally:
        key = cache_keys.medal_key(member_id, year)
        cached = cache.get(key)
        if cached is not None:
            return MedalTally(**cached)

        result = MedalTally()
        complete = self._count_entry_medals(member_id, year, result)
        complete = self._count_official_medals(member_id, year, result) and complete
        if complete:
            cache.set(
                key,
                {"silver_count": result.silver_count, "bronze_count": result.bronze_count},
                timeout=TIMING.MEDAL_CACHE_TIMEOUT,
            )
        return result

    def tally_by_year(self, member_id: int, years: Iterable[int]) -> dict[int, MedalTally]:
        return {year: self.tally(member_id, year) for year in years}

    def _count_entry_medals(self, member_id: int, year: int, result: MedalTally) -> bool:
        try:
            medals = list(
                self.repository.get_raw_score_entries(member_id, is_competition=True, year=year)
                .exclude(competition_medal="")
                .values_list("competition_medal", flat=True)
            )
        except Exception:
            logger.exception(f"Medal entries unavailable for member {member_id}, year {year}")
            return False
        for grade in medals:
            result.add(grade)
        return True

    def _count_official_medals(self, member_id: int, year: int, result: MedalTally) -> bool:
        try:
            competition_ids = self.repository.get_participated_competition_ids(member_id)
        except Exception:
            logger.exception(f"Competition index unavailable for member {member_id}")
            return False

        complete = True
        for competition_id in sorted(competition_ids):
            try:
                # Year filtering only needs the date, not the document.
                competition_date = self.repository.get_competition_date(competition_id)
                if competition_date is None or competition_date.year != year:
                    continue
                document = parse_result_document(
                    self.repository.get_official_result_document(competition_id)
                )
            except Exception:
                logger.exception(f"Result document for competition {competition_id} unavailable")
                complete = False
                continue
            if document is None:
                continue
            for _group, shooter in find_member_shooters(document, member_id):
                result.add(shooter.get("standardMedal"))
        return complete
