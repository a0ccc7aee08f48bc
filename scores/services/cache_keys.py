"""
Per-member cache versioning.

Every cached value derived from a member's scores is stored under that
member's current version. Bumping the version invalidates all of them at
once without touching any other member's entries.
"""
import time

from django.core.cache import cache


def _version_key(member_id: int) -> str:
    return f"member_scores_version_{member_id}"


def _fresh_version() -> int:
    # Never reuse a number an evicted version key might have had.
    return time.time_ns()


def member_version(member_id: int) -> int:
    version = cache.get(_version_key(member_id))
    if version is None:
        cache.add(_version_key(member_id), _fresh_version(), timeout=None)
        version = cache.get(_version_key(member_id))
    return version


def invalidate_member(member_id: int) -> None:
    try:
        cache.incr(_version_key(member_id))
    except ValueError:
        cache.set(_version_key(member_id), _fresh_version(), timeout=None)


def results_key(member_id: int) -> str:
    return f"member_results_{member_id}_v{member_version(member_id)}"


def medal_key(member_id: int, year: int) -> str:
    return f"member_medals_{member_id}_{year}_v{member_version(member_id)}"
