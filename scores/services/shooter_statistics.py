"""
Running per-(member, weapon class) RAW baseline.

New entries are folded in incrementally. Edits and deletions rebuild the
statistic by replaying the member's surviving entries for that class in
chronological order through the same fold, so both paths always agree.

Locking order is always: key lock -> transaction.atomic -> select_for_update.
The key lock is process-local; the row lock covers other processes.
"""
from __future__ import annotations

import logging
import threading
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass
from typing import Iterable, Iterator

from django.db import transaction

from ..exceptions import RecalculationError
from ..models import ShooterStatistic
from ..repository import ScoreRepository

logger = logging.getLogger(__name__)

StatisticKey = tuple[int, str]


class KeyedLockRegistry:
    """
    One re-entrant lock per key, created on first use.

    Locks are never evicted: a lock could be in use or about to be acquired
    by another thread. The registry is bounded by members x weapon classes,
    a few thousand small objects for a club, so it is left to grow.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[StatisticKey, threading.RLock] = {}

    def lock_for(self, key: StatisticKey) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, key: StatisticKey) -> Iterator[None]:
        lock = self.lock_for(key)
        with lock:
            yield

    @contextmanager
    def hold_many(self, keys: Iterable[StatisticKey]) -> Iterator[None]:
        """Acquire several keys in sorted order so two callers never deadlock."""
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                stack.enter_context(self.hold(key))
            yield


STATISTIC_LOCKS = KeyedLockRegistry()


@dataclass
class StatisticState:
    completed_matches: int = 0
    total_series_count: int = 0
    total_series_points: int = 0

    @property
    def average_per_series(self) -> float:
        if not self.total_series_count:
            return 0.0
        return self.total_series_points / self.total_series_count

    @property
    def is_empty(self) -> bool:
        return self.completed_matches == 0

    @classmethod
    def from_statistic(cls, statistic: ShooterStatistic) -> "StatisticState":
        return cls(
            completed_matches=statistic.completed_matches,
            total_series_count=statistic.total_series_count,
            total_series_points=statistic.total_series_points,
        )

    def apply_to(self, statistic: ShooterStatistic) -> ShooterStatistic:
        statistic.completed_matches = self.completed_matches
        statistic.total_series_count = self.total_series_count
        statistic.total_series_points = self.total_series_points
        statistic.average_per_series = self.average_per_series
        return statistic


def qualifies(series_count: int, total_score: int) -> bool:
    return series_count > 0 and total_score > 0


def fold(state: StatisticState, series_count: int, total_score: int) -> StatisticState:
    """Add one observation to ``state``; non-qualifying observations change nothing."""
    if not qualifies(series_count, total_score):
        return state
    return StatisticState(
        completed_matches=state.completed_matches + 1,
        total_series_count=state.total_series_count + series_count,
        total_series_points=state.total_series_points + total_score,
    )


def replay(observations: Iterable[tuple[int, int]]) -> StatisticState:
    state = StatisticState()
    for series_count, total_score in observations:
        state = fold(state, series_count, total_score)
    return state


class ShooterStatisticsService:
    def __init__(self, repository=ScoreRepository, locks: KeyedLockRegistry = STATISTIC_LOCKS):
        self.repository = repository
        self.locks = locks

    def update_after_entry(
        self, member_id: int, weapon_class: str, series_count: int, total_score: int
    ) -> ShooterStatistic | None:
        """Fold a newly recorded entry into the stored statistic."""
        if not qualifies(series_count, total_score):
            logger.debug(
                f"Ignoring non-qualifying entry for member {member_id} class {weapon_class}"
            )
            return self.repository.get_statistic(member_id, weapon_class)

        with self.locks.hold((member_id, weapon_class)), transaction.atomic():
            statistic = self.repository.get_statistic(member_id, weapon_class, for_update=True)
            if statistic is None:
                statistic = ShooterStatistic(member_id=member_id, weapon_class=weapon_class)
                state = StatisticState()
            else:
                state = StatisticState.from_statistic(statistic)
            fold(state, series_count, total_score).apply_to(statistic)
            return self.repository.save_statistic(statistic)

    def recalculate_from_history(
        self, member_id: int, weapon_class: str, dry_run: bool = False
    ) -> StatisticState:
        """
        Rebuild the statistic from every surviving raw entry of the key.

        The new state is computed in memory before anything is written. On any
        failure the transaction rolls back, the stored row stays as it was and
        ``RecalculationError`` is raised.
        """
        key = (member_id, weapon_class)
        try:
            with self.locks.hold(key), transaction.atomic():
                entries = self.repository.get_entries_for_replay(member_id, weapon_class)
                state = replay((entry.series_count, entry.total_score) for entry in entries)
                if dry_run:
                    return state

                statistic = self.repository.get_statistic(member_id, weapon_class, for_update=True)
                if state.is_empty:
                    if statistic is not None:
                        self.repository.delete_statistic(statistic)
                        logger.info(f"Removed empty statistic for member {member_id} class {weapon_class}")
                    return state

                if statistic is None:
                    statistic = ShooterStatistic(member_id=member_id, weapon_class=weapon_class)
                self.repository.save_statistic(state.apply_to(statistic))
        except Exception as exc:
            logger.exception(f"Recalculation failed for member {member_id} class {weapon_class}")
            raise RecalculationError() from exc

        logger.info(
            f"Recalculated member {member_id} class {weapon_class}: "
            f"{state.completed_matches} matches, {state.average_per_series:.2f}p/series"
        )
        return state

    def recalculate_member(self, member_id: int, dry_run: bool = False) -> dict[str, StatisticState]:
        return {
            weapon_class: self.recalculate_from_history(member_id, weapon_class, dry_run=dry_run)
            for weapon_class in sorted(self.repository.weapon_classes_for_member(member_id))
        }

    def get_statistic(self, member_id: int, weapon_class: str) -> ShooterStatistic | None:
        return self.repository.get_statistic(member_id, weapon_class)

    def get_all_statistics(self, member_id: int) -> list[ShooterStatistic]:
        return self.repository.get_all_statistics(member_id)
