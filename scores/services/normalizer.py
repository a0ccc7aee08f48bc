"""
Result normalization.

Turns the three score sources into one ``ResultEntry`` shape:

* raw training entries          -> SourceType.TRAINING
* raw external competition rows -> SourceType.COMPETITION
* official result documents     -> SourceType.OFFICIAL

Each source has its own adapter so schema drift in one of them never leaks
into the statistics code.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Iterable

from ..models import RawScoreEntry
from ..repository import ScoreRepository

logger = logging.getLogger(__name__)

DEFAULT_WEAPON_CLASS = "A"
X_SHOT_VALUE = 10


class SourceType(str, Enum):
    TRAINING = "Training"
    COMPETITION = "Competition"
    OFFICIAL = "Official"


@dataclass(frozen=True)
class SeriesDetail:
    series_number: int
    total: int
    x_count: int = 0
    shots: tuple[str, ...] | None = None


@dataclass(frozen=True)
class ResultEntry:
    member_id: int
    date: date
    weapon_class: str
    series_count: int
    total_score: int
    x_count: int
    source_type: SourceType
    entry_id: int | None = None
    competition_id: int | None = None
    competition_name: str | None = None
    medal: str | None = None
    notes: str = ""
    series: tuple[SeriesDetail, ...] = field(default_factory=tuple)

    @property
    def average_score(self) -> float:
        return self.total_score / self.series_count if self.series_count else 0.0

    @property
    def is_competition(self) -> bool:
        return self.source_type != SourceType.TRAINING

    @property
    def can_edit(self) -> bool:
        return self.entry_id is not None and self.source_type != SourceType.OFFICIAL

    def to_dict(self) -> dict:
        return {
            "id": self.entry_id if self.entry_id is not None else self.competition_id,
            "date": self.date.isoformat(),
            "source_type": self.source_type.value,
            "weapon_class": self.weapon_class,
            "total_score": self.total_score,
            "x_count": self.x_count,
            "series_count": self.series_count,
            "average_score": round(self.average_score, 1),
            "competition_id": self.competition_id,
            "competition_name": self.competition_name,
            "medal": self.medal,
            "can_edit": self.can_edit,
            "can_delete": self.can_edit,
            "notes": self.notes,
            "series": [
                {
                    "series_number": s.series_number,
                    "total": s.total,
                    "x_count": s.x_count,
                    "shots": list(s.shots) if s.shots is not None else None,
                }
                for s in self.series
            ],
        }


def shot_value(shot) -> tuple[int, int]:
    """Return ``(points, x_count)`` for one shot; unknown values score zero."""
    raw = str(shot).strip().upper() if shot is not None else ""
    if raw == "X":
        return X_SHOT_VALUE, 1
    try:
        return int(raw), 0
    except ValueError:
        return 0, 0


def score_shots(shots: Iterable) -> tuple[int, int]:
    total = x_count = 0
    for shot in shots:
        points, is_x = shot_value(shot)
        total += points
        x_count += is_x
    return total, x_count


def is_countable(entry: ResultEntry) -> bool:
    """Zero-series or non-positive sessions are incomplete and never aggregated."""
    return entry.series_count > 0 and entry.total_score > 0


def from_raw_entry(raw: RawScoreEntry) -> ResultEntry:
    series = tuple(
        SeriesDetail(
            series_number=item.get("series_number", index),
            total=int(item.get("total", 0)),
            x_count=int(item.get("x_count", 0)),
            shots=tuple(item["shots"]) if item.get("shots") else None,
        )
        for index, item in enumerate(raw.series or [], start=1)
    )
    return ResultEntry(
        member_id=raw.member_id,
        date=raw.training_date,
        weapon_class=raw.weapon_class,
        series_count=raw.series_count,
        total_score=raw.total_score,
        x_count=raw.x_count,
        source_type=SourceType.COMPETITION if raw.is_competition else SourceType.TRAINING,
        entry_id=raw.id,
        medal=raw.competition_medal.upper() if raw.competition_medal else None,
        notes=raw.notes or "",
        series=series,
    )


def parse_result_document(raw_json: str | None) -> dict | None:
    """Decode an official result document; ``None`` for missing or malformed data."""
    if not raw_json:
        return None
    try:
        data = json.loads(raw_json)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict) or not isinstance(data.get("classGroups"), list):
        return None
    return data


def find_member_shooters(document: dict, member_id: int) -> list[tuple[dict, dict]]:
    """
    Return ``(class_group, shooter)`` pairs for the member, one per class group.

    A member may appear in several class groups (one per weapon class shot).
    """
    matches = []
    for group in document.get("classGroups") or []:
        if not isinstance(group, dict):
            continue
        for shooter in group.get("shooters") or []:
            if not isinstance(shooter, dict):
                continue
            try:
                shooter_member_id = int(shooter.get("memberId"))
            except (TypeError, ValueError):
                continue
            if shooter_member_id == member_id:
                matches.append((group, shooter))
                break
    return matches


def _decode_shots(raw_shots) -> list:
    if isinstance(raw_shots, list):
        return raw_shots
    if isinstance(raw_shots, str) and raw_shots:
        try:
            decoded = json.loads(raw_shots)
        except ValueError:
            return []
        return decoded if isinstance(decoded, list) else []
    return []


def _weapon_class_for(group: dict, shooter: dict) -> str:
    for candidate in (shooter.get("shootingClass"), group.get("className")):
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()[0].upper()
    return DEFAULT_WEAPON_CLASS


def from_official_shooter(
    member_id: int,
    group: dict,
    shooter: dict,
    competition_id: int,
    competition_name: str | None,
    competition_date: date,
) -> ResultEntry:
    series = []
    for index, result in enumerate(shooter.get("results") or [], start=1):
        if not isinstance(result, dict):
            continue
        shots = _decode_shots(result.get("shots"))
        total, x_count = score_shots(shots)
        series.append(
            SeriesDetail(
                series_number=result.get("seriesNumber") or index,
                total=total,
                x_count=x_count,
                shots=tuple(str(s) for s in shots),
            )
        )

    if shooter.get("totalScore") is not None:
        total_score = int(shooter["totalScore"])
        x_count = int(shooter.get("xCount") or 0)
        series_count = int(shooter.get("seriesCount") or len(series))
    else:
        total_score = sum(s.total for s in series)
        x_count = sum(s.x_count for s in series)
        series_count = len(series)

    medal = shooter.get("standardMedal")
    return ResultEntry(
        member_id=member_id,
        date=competition_date,
        weapon_class=_weapon_class_for(group, shooter),
        series_count=series_count,
        total_score=total_score,
        x_count=x_count,
        source_type=SourceType.OFFICIAL,
        competition_id=competition_id,
        competition_name=competition_name,
        medal=medal.upper() if isinstance(medal, str) and medal else None,
        series=tuple(series),
    )


@dataclass
class NormalizedResults:
    entries: list[ResultEntry] = field(default_factory=list)
    failed_sources: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed_sources


class ResultNormalizer:
    """Collects ``ResultEntry`` values for one member from every source."""

    def __init__(self, repository: type[ScoreRepository] | ScoreRepository = ScoreRepository):
        self.repository = repository

    def normalize_member_results(self, member_id: int) -> list[ResultEntry]:
        return self.collect(member_id).entries

    def collect(self, member_id: int) -> NormalizedResults:
        """
        Read every source for the member.

        A failing source is logged and recorded in ``failed_sources``; the
        remaining sources still contribute.
        """
        outcome = NormalizedResults()
        self._collect_raw_entries(member_id, outcome)
        self._collect_official_results(member_id, outcome)
        outcome.entries = [entry for entry in outcome.entries if is_countable(entry)]
        return outcome

    def _collect_raw_entries(self, member_id: int, outcome: NormalizedResults) -> None:
        try:
            rows = list(self.repository.get_raw_score_entries(member_id))
        except Exception:
            logger.exception(f"Raw score entries unavailable for member {member_id}")
            outcome.failed_sources.append("raw_entries")
            return
        outcome.entries.extend(from_raw_entry(row) for row in rows)

    def _collect_official_results(self, member_id: int, outcome: NormalizedResults) -> None:
        try:
            competition_ids = self.repository.get_participated_competition_ids(member_id)
        except Exception:
            logger.exception(f"Participation index unavailable for member {member_id}")
            outcome.failed_sources.append("participation_index")
            return

        for competition_id in sorted(competition_ids):
            try:
                outcome.entries.extend(self._official_results_for(member_id, competition_id))
            except Exception:
                # One competition's documents must never hide the others.
                logger.exception(f"Official results for competition {competition_id} unavailable")
                outcome.failed_sources.append(f"competition:{competition_id}")

    def _official_results_for(self, member_id: int, competition_id: int) -> list[ResultEntry]:
        competition = self.repository.get_competition(competition_id)
        if competition is None:
            return []
        document = parse_result_document(
            self.repository.get_official_result_document(competition_id)
        )
        if document is None:
            logger.warning(f"Skipping competition {competition_id}: no readable final results")
            return []
        return [
            from_official_shooter(
                member_id,
                group,
                shooter,
                competition_id=competition.id,
                competition_name=competition.name,
                competition_date=competition.competition_date,
            )
            for group, shooter in find_member_shooters(document, member_id)
        ]
