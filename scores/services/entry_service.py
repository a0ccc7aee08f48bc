from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_date

from ..exceptions import (
    ConcurrentModificationError,
    EntryNotFoundError,
    EntryValidationError,
    OwnershipError,
    ScoreEngineError,
)
from ..models import WEAPON_CLASSES, RawScoreEntry
from ..repository import ScoreRepository
from . import cache_keys
from .normalizer import from_raw_entry, score_shots
from .shooter_statistics import ShooterStatisticsService

logger = logging.getLogger(__name__)

MAX_SERIES = 24
MAX_LOCK_ATTEMPTS = 3
SHOTS_PER_SERIES = 5
VALID_SHOTS = {str(points) for points in range(11)} | {"X"}
VALID_MEDALS = {"", "S", "B"}

SHOT_BY_SHOT = "ShotByShot"
SERIES_TOTAL = "SeriesTotal"


@dataclass
class OperationResult:
    success: bool
    message: str
    data: Any = None

    def to_dict(self) -> dict:
        return {"success": self.success, "message": self.message, "data": self.data}


@dataclass
class SubmittedEntry:
    training_date: date
    weapon_class: str
    series: list[dict] = field(default_factory=list)
    is_competition: bool = False
    competition_place: int | None = None
    competition_shooting_class: str = ""
    competition_medal: str = ""
    notes: str = ""

    def apply_to(self, entry: RawScoreEntry) -> RawScoreEntry:
        entry.training_date = self.training_date
        entry.weapon_class = self.weapon_class
        entry.series = self.series
        entry.is_competition = self.is_competition
        entry.competition_place = self.competition_place
        entry.competition_shooting_class = self.competition_shooting_class
        entry.competition_medal = self.competition_medal
        entry.notes = self.notes
        return entry


class EntryService:
    """
    Record, edit and delete raw score entries.

    Each mutation and the statistic update it triggers run in one
    transaction while the affected statistic keys are locked: either both
    land or neither does. Every public method returns an ``OperationResult``.
    """

    def __init__(self, repository=ScoreRepository, statistics: ShooterStatisticsService | None = None):
        self.repository = repository
        self.statistics = statistics or ShooterStatisticsService(repository)

    # ---- parsing & validation -------------------------------------------------

    @staticmethod
    def parse_int(value, label: str) -> int:
        if isinstance(value, bool):
            raise EntryValidationError(f"{label} måste vara ett heltal.")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise EntryValidationError(f"{label} måste vara ett heltal.") from None

    @staticmethod
    def parse_training_date(value) -> date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        parsed = parse_date(value) if isinstance(value, str) else None
        if parsed is None:
            raise EntryValidationError("Datum saknas eller är ogiltigt.")
        return parsed

    @staticmethod
    def parse_series(index: int, raw) -> dict:
        """
        Normalize one submitted series.

        A bare integer is a series total without X-count. A dict carries
        either five ``shots`` (shot by shot) or an explicit ``total``.
        """
        if isinstance(raw, int) and not isinstance(raw, bool):
            raw = {"total": raw, "entry_method": SERIES_TOTAL}
        if not isinstance(raw, dict):
            raise EntryValidationError(f"Serie {index} är ogiltig.")

        method = raw.get("entry_method") or (SHOT_BY_SHOT if raw.get("shots") is not None else SERIES_TOTAL)
        if method == SHOT_BY_SHOT:
            shots = raw.get("shots")
            if not isinstance(shots, list) or len(shots) != SHOTS_PER_SERIES:
                raise EntryValidationError(
                    f"Serie {index} måste ha exakt {SHOTS_PER_SERIES} skott."
                )
            normalized = [str(shot).strip().upper() for shot in shots]
            if any(shot not in VALID_SHOTS for shot in normalized):
                raise EntryValidationError(f"Serie {index} innehåller ogiltiga skott.")
            total, x_count = score_shots(normalized)
            return {"total": total, "x_count": x_count, "shots": normalized, "entry_method": SHOT_BY_SHOT}

        if method == SERIES_TOTAL:
            if raw.get("shots") is not None:
                raise EntryValidationError(f"Serie {index}: seriesumma kan inte ha skott.")
            total = EntryService.parse_int(raw.get("total"), f"Serie {index} summa")
            x_count = EntryService.parse_int(raw.get("x_count", 0), f"Serie {index} X")
            if total < 0 or x_count < 0:
                raise EntryValidationError(f"Serie {index} får inte ha negativa värden.")
            return {"total": total, "x_count": x_count, "entry_method": SERIES_TOTAL}

        raise EntryValidationError(f"Serie {index} har okänd inmatningsmetod: {method}")

    def validate(self, member_id: int, data: dict, today: date | None = None) -> SubmittedEntry:
        if not isinstance(data, dict):
            raise EntryValidationError()
        if not self.repository.member_exists(member_id):
            raise EntryValidationError("Medlemmen finns inte.")

        weapon_class = str(data.get("weapon_class") or "").strip().upper()
        if weapon_class not in WEAPON_CLASSES:
            raise EntryValidationError("Ogiltig vapengrupp.")

        training_date = self.parse_training_date(data.get("training_date"))
        if training_date > (today or timezone.localdate()):
            raise EntryValidationError("Datum kan inte vara i framtiden.")

        raw_series = data.get("series")
        if not isinstance(raw_series, list) or not raw_series:
            raise EntryValidationError("Minst en serie krävs.")
        if len(raw_series) > MAX_SERIES:
            raise EntryValidationError(f"Högst {MAX_SERIES} serier tillåts.")
        series = [self.parse_series(index, raw) for index, raw in enumerate(raw_series, start=1)]

        is_competition = bool(data.get("is_competition", False))
        medal = str(data.get("competition_medal") or "").strip().upper()
        if medal not in VALID_MEDALS:
            raise EntryValidationError("Ogiltig medalj.")

        place = data.get("competition_place")
        if place in (None, ""):
            place = None
        else:
            place = self.parse_int(place, "Placering")
            if place < 1:
                raise EntryValidationError("Placering måste vara minst 1.")

        return SubmittedEntry(
            training_date=training_date,
            weapon_class=weapon_class,
            series=series,
            is_competition=is_competition,
            competition_place=place if is_competition else None,
            competition_shooting_class=(
                str(data.get("competition_shooting_class") or "").strip() if is_competition else ""
            ),
            competition_medal=medal if is_competition else "",
            notes=str(data.get("notes") or ""),
        )

    def _owned_entry(self, entry_id: int, member_id: int) -> RawScoreEntry:
        entry = self.repository.get_entry_by_id(entry_id)
        if entry is None:
            raise EntryNotFoundError()
        if entry.member_id != member_id:
            raise OwnershipError()
        return entry

    def _locked_mutation(self, entry_id: int, member_id: int, seen: RawScoreEntry, new_class, mutate):
        """
        Run ``mutate(entry)`` on a fresh, row-locked copy of the entry.

        The statistic keys of the entry's current class and ``new_class`` are
        held for the whole transaction. When a concurrent edit moved the entry
        to another class after ``seen`` was read, the locks are released and
        the entry is read again, so the recalculated classes are always the
        ones the entry really leaves and enters.
        """
        for _attempt in range(MAX_LOCK_ATTEMPTS):
            seen_class = seen.weapon_class
            classes = sorted({seen_class, new_class} - {None})
            with self.statistics.locks.hold_many((member_id, c) for c in classes), transaction.atomic():
                entry = self.repository.get_entry_by_id(entry_id, for_update=True)
                if entry is None:
                    raise EntryNotFoundError()
                if entry.member_id != member_id:
                    raise OwnershipError()
                if entry.weapon_class == seen_class:
                    result = mutate(entry)
                    for weapon_class in classes:
                        self.statistics.recalculate_from_history(member_id, weapon_class)
                    return seen_class, result
            logger.info(f"Entry {entry_id} changed class while waiting for locks, retrying")
            seen = self._owned_entry(entry_id, member_id)
        raise ConcurrentModificationError()

    # ---- operations -----------------------------------------------------------

    def record_entry(self, member_id: int, data: dict, today: date | None = None) -> OperationResult:
        try:
            submitted = self.validate(member_id, data, today)
            with self.statistics.locks.hold((member_id, submitted.weapon_class)), transaction.atomic():
                entry = self.repository.insert_entry(
                    submitted.apply_to(RawScoreEntry(member_id=member_id))
                )
                self.statistics.update_after_entry(
                    member_id, entry.weapon_class, entry.series_count, entry.total_score
                )
        except ScoreEngineError as exc:
            logger.warning(f"Entry for member {member_id} rejected: {exc.message}")
            return OperationResult(False, exc.message)
        except Exception:
            logger.exception(f"Failed to record entry for member {member_id}")
            return OperationResult(False, "Resultatet kunde inte sparas.")

        cache_keys.invalidate_member(member_id)
        logger.info(f"Recorded entry {entry.id} for member {member_id}")
        return OperationResult(True, "Resultatet sparades.", from_raw_entry(entry).to_dict())

    def edit_entry(
        self, entry_id: int, member_id: int, data: dict, today: date | None = None
    ) -> OperationResult:
        try:
            seen = self._owned_entry(entry_id, member_id)
            submitted = self.validate(member_id, data, today)
            old_class, entry = self._locked_mutation(
                entry_id,
                member_id,
                seen,
                submitted.weapon_class,
                lambda current: self.repository.update_entry(submitted.apply_to(current)),
            )
        except ScoreEngineError as exc:
            logger.warning(f"Edit of entry {entry_id} by member {member_id} rejected: {exc.message}")
            return OperationResult(False, exc.message)
        except Exception:
            logger.exception(f"Failed to edit entry {entry_id} for member {member_id}")
            return OperationResult(False, "Resultatet kunde inte uppdateras.")

        cache_keys.invalidate_member(member_id)
        logger.info(f"Edited entry {entry_id} for member {member_id} ({old_class} -> {entry.weapon_class})")
        return OperationResult(True, "Resultatet uppdaterades.", from_raw_entry(entry).to_dict())

    def delete_entry(self, entry_id: int, member_id: int) -> OperationResult:
        try:
            seen = self._owned_entry(entry_id, member_id)
            self._locked_mutation(entry_id, member_id, seen, None, self.repository.delete_entry)
        except ScoreEngineError as exc:
            logger.warning(f"Delete of entry {entry_id} by member {member_id} rejected: {exc.message}")
            return OperationResult(False, exc.message)
        except Exception:
            logger.exception(f"Failed to delete entry {entry_id} for member {member_id}")
            return OperationResult(False, "Resultatet kunde inte tas bort.")

        cache_keys.invalidate_member(member_id)
        logger.info(f"Deleted entry {entry_id} for member {member_id}")
        return OperationResult(True, "Resultatet togs bort.", {"id": entry_id})
