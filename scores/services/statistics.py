from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, Sequence

from club_project.settings.config import TIMING

from .normalizer import ResultEntry

# Classes always listed in the per-class personal best overview
DISPLAY_WEAPON_CLASSES = ("A", "B", "C", "R", "M", "L")


def _average(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


@dataclass
class Statistics:
    """Aggregate metrics over a result subset. Averages are kept unrounded."""

    total_sessions: int = 0
    overall_average: float = 0.0
    recent_average: float = 0.0
    previous_average: float = 0.0
    recent_average_by_weapon_class: dict[str, float] = field(default_factory=dict)
    personal_bests_by_weapon_class: dict[str, float | None] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Display payload; every average rounded to one decimal."""
        return {
            "total_sessions": self.total_sessions,
            "overall_average": round(self.overall_average, 1),
            "recent_average": round(self.recent_average, 1),
            "previous_average": round(self.previous_average, 1),
            "recent_average_by_weapon_class": [
                {"weapon_class": weapon_class, "average": round(average, 1)}
                for weapon_class, average in self.recent_average_by_weapon_class.items()
            ],
            "personal_bests": [
                {
                    "weapon_class": weapon_class,
                    "best_average": round(best, 1) if best is not None else None,
                }
                for weapon_class, best in self.personal_bests_by_weapon_class.items()
            ],
        }


class StatisticsCalculator:
    @staticmethod
    def calculate(
        entries: Iterable[ResultEntry],
        now: date | datetime,
        window_days: int = TIMING.TREND_WINDOW_DAYS,
    ) -> Statistics:
        """
        Compute statistics for an arbitrary result subset.

        ``now`` is the single reference point for both trend windows:
        recent = [now - window, now], previous = [now - 2*window, now - window).
        Source agnostic: callers pick the subset.
        """
        entries = list(entries)
        today = as_date(now)
        recent_start = today - timedelta(days=window_days)
        previous_start = today - timedelta(days=2 * window_days)

        recent = [e for e in entries if e.date >= recent_start]
        previous = [e for e in entries if previous_start <= e.date < recent_start]

        by_class: dict[str, list[float]] = {}
        for entry in recent:
            by_class.setdefault(entry.weapon_class, []).append(entry.average_score)

        best_by_class: dict[str, float] = {}
        for entry in entries:
            best = best_by_class.get(entry.weapon_class)
            if best is None or entry.average_score > best:
                best_by_class[entry.weapon_class] = entry.average_score

        return Statistics(
            total_sessions=len(entries),
            overall_average=_average([e.average_score for e in entries]),
            recent_average=_average([e.average_score for e in recent]),
            previous_average=_average([e.average_score for e in previous]),
            recent_average_by_weapon_class={
                weapon_class: _average(values) for weapon_class, values in sorted(by_class.items())
            },
            personal_bests_by_weapon_class={
                weapon_class: best_by_class.get(weapon_class)
                for weapon_class in _display_classes(best_by_class)
            },
        )

    @staticmethod
    def monthly_series(entries: Iterable[ResultEntry]) -> list[dict]:
        """One chart point per entry, oldest first."""
        points = sorted(entries, key=lambda e: e.date)
        return [
            {
                "date": entry.date.isoformat(),
                "year": entry.date.year,
                "month": entry.date.month,
                "day": entry.date.day,
                "weapon_class": entry.weapon_class,
                "is_competition": entry.is_competition,
                "average_score": round(entry.average_score, 1),
                "total_score": entry.total_score,
                "series_count": entry.series_count,
                "competition_name": entry.competition_name,
                "id": entry.entry_id if entry.entry_id is not None else entry.competition_id,
            }
            for entry in points
        ]

    @staticmethod
    def weapon_class_breakdown(entries: Iterable[ResultEntry]) -> list[dict]:
        groups: dict[tuple[str, bool], list[float]] = {}
        for entry in entries:
            groups.setdefault((entry.weapon_class, entry.is_competition), []).append(
                entry.average_score
            )
        return [
            {
                "weapon_class": weapon_class,
                "is_competition": is_competition,
                "average_score": round(_average(values), 1),
                "session_count": len(values),
            }
            for (weapon_class, is_competition), values in sorted(groups.items())
        ]

    @staticmethod
    def available_years(entries: Iterable[ResultEntry], now: date | datetime) -> list[int]:
        years = sorted({entry.date.year for entry in entries}, reverse=True)
        return years or [as_date(now).year]


def _display_classes(seen: dict[str, float]) -> list[str]:
    extra = sorted(set(seen) - set(DISPLAY_WEAPON_CLASSES))
    return list(DISPLAY_WEAPON_CLASSES) + extra
