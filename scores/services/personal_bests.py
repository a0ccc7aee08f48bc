from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable

from .normalizer import ResultEntry, SourceType

BestKey = tuple[str, int, bool]

# Series counts shown on the dashboard's personal-best table
STANDARD_SERIES_COUNTS = (6, 7, 10)
L_WEAPON_SERIES_COUNTS = (6, 8, 12)


@dataclass(frozen=True)
class PersonalBest:
    member_id: int
    weapon_class: str
    series_count: int
    is_competition: bool
    best_score: int
    x_count: int
    achieved_date: date
    source_type: SourceType
    entry_id: int | None = None
    competition_id: int | None = None

    @property
    def key(self) -> BestKey:
        return (self.weapon_class, self.series_count, self.is_competition)

    @property
    def average_score(self) -> float:
        return self.best_score / self.series_count if self.series_count else 0.0

    def to_dict(self) -> dict:
        return {
            "weapon_class": self.weapon_class,
            "series_count": self.series_count,
            "is_competition": self.is_competition,
            "best_score": self.best_score,
            "x_count": self.x_count,
            "average_score": round(self.average_score, 1),
            "achieved_date": self.achieved_date.isoformat(),
            "source_type": self.source_type.value,
            "entry_id": self.entry_id,
            "competition_id": self.competition_id,
        }


class PersonalBestTracker:
    @staticmethod
    def _from_entry(entry: ResultEntry) -> PersonalBest:
        return PersonalBest(
            member_id=entry.member_id,
            weapon_class=entry.weapon_class,
            series_count=entry.series_count,
            is_competition=entry.is_competition,
            best_score=entry.total_score,
            x_count=entry.x_count,
            achieved_date=entry.date,
            source_type=entry.source_type,
            entry_id=entry.entry_id,
            competition_id=entry.competition_id,
        )

    @staticmethod
    def compute_bests(entries: Iterable[ResultEntry]) -> dict[BestKey, PersonalBest]:
        """
        Best entry per (weapon class, series count, competition flag).

        Higher total score wins, then higher X-count. On a full tie the entry
        seen first in ``entries`` is kept, so the result only depends on the
        input order, never on previous calls.
        """
        bests: dict[BestKey, PersonalBest] = {}
        for entry in entries:
            key = (entry.weapon_class, entry.series_count, entry.is_competition)
            current = bests.get(key)
            if current is None or (entry.total_score, entry.x_count) > (
                current.best_score,
                current.x_count,
            ):
                bests[key] = PersonalBestTracker._from_entry(entry)
        return bests

    @staticmethod
    def group_by_weapon_class(bests: dict[BestKey, PersonalBest] | Iterable[PersonalBest]) -> dict[str, list[PersonalBest]]:
        """Project bucketed bests onto weapon class, ordered by series count then training first."""
        values = bests.values() if isinstance(bests, dict) else bests
        grouped: dict[str, list[PersonalBest]] = {}
        for best in values:
            grouped.setdefault(best.weapon_class, []).append(best)
        return {
            weapon_class: sorted(items, key=lambda pb: (pb.series_count, pb.is_competition))
            for weapon_class, items in sorted(grouped.items())
        }

    @staticmethod
    def filter_entries(
        entries: Iterable[ResultEntry],
        weapon_class: str | None = None,
        include_competitions: bool = True,
    ) -> list[ResultEntry]:
        return [
            entry
            for entry in entries
            if (not weapon_class or entry.weapon_class == weapon_class)
            and (include_competitions or not entry.is_competition)
        ]

    @staticmethod
    def bests_for_standard_series_counts(bests: dict[BestKey, PersonalBest]) -> list[PersonalBest]:
        """Keep only the series counts shown on the dashboard (L-weapons use their own)."""
        selected = [
            best
            for best in bests.values()
            if best.series_count
            in (L_WEAPON_SERIES_COUNTS if best.weapon_class == "L" else STANDARD_SERIES_COUNTS)
        ]
        return sorted(selected, key=lambda pb: (pb.weapon_class, pb.series_count, pb.is_competition))
