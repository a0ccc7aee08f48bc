from __future__ import annotations

from django.core.cache import cache

from club_project.settings.config import TIMING

from ..repository import ScoreRepository
from . import cache_keys
from .normalizer import ResultEntry, ResultNormalizer


class UnifiedResultsService:
    """
    Merges every source into one date-ordered timeline per member.

    No deduplication across sources: an external competition logged by the
    member and an official result on the same day are two entries.
    """

    def __init__(self, repository=ScoreRepository, normalizer: ResultNormalizer | None = None):
        self.repository = repository
        self.normalizer = normalizer or ResultNormalizer(repository)

    def get_member_results(
        self, member_id: int, limit: int | None = None, skip: int | None = None
    ) -> list[ResultEntry]:
        """
        Return the member's results, most recent first.

        Sorting is stable, so entries sharing a date keep the normalizer's
        order. ``skip`` is applied before ``limit``.
        """
        results = self._load_all(member_id)
        if skip:
            results = results[max(skip, 0):]
        if limit is not None:
            results = results[:max(limit, 0)]
        return results

    def _load_all(self, member_id: int) -> list[ResultEntry]:
        key = cache_keys.results_key(member_id)
        cached = cache.get(key)
        if cached is not None:
            return list(cached)

        collected = self.normalizer.collect(member_id)
        results = sorted(collected.entries, key=lambda entry: entry.date, reverse=True)
        # Partial timelines are served but never cached.
        if collected.complete:
            cache.set(key, results, timeout=TIMING.RESULTS_CACHE_TIMEOUT)
        return list(results)

    @staticmethod
    def invalidate(member_id: int) -> None:
        cache_keys.invalidate_member(member_id)
