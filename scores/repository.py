"""
Storage access for the scoring engine.

Everything the engine reads from or writes to the database goes through
``ScoreRepository`` so the services never touch querysets directly and a
test can swap a single method to simulate an unavailable source.
"""
from __future__ import annotations

from datetime import date

from django.db import DatabaseError
from django.db.models import QuerySet

from competitions.models import Competition, CompetitionParticipant, CompetitionResult

from .exceptions import EntryNotFoundError
from .models import Member, RawScoreEntry, ShooterStatistic


class ScoreRepository:
    @staticmethod
    def member_exists(member_id: int) -> bool:
        return Member.objects.filter(id=member_id).exists()

    @staticmethod
    def get_member(member_id: int) -> Member | None:
        return Member.objects.filter(id=member_id).first()

    @staticmethod
    def get_raw_score_entries(
        member_id: int,
        weapon_class: str | None = None,
        is_competition: bool | None = None,
        year: int | None = None,
    ) -> QuerySet[RawScoreEntry]:
        """Raw entries for a member, most recent first."""
        qs = RawScoreEntry.objects.filter(member_id=member_id)
        if weapon_class:
            qs = qs.filter(weapon_class=weapon_class)
        if is_competition is not None:
            qs = qs.filter(is_competition=is_competition)
        if year is not None:
            qs = qs.filter(training_date__year=year)
        return qs.order_by("-training_date", "-id")

    @staticmethod
    def get_entries_for_replay(member_id: int, weapon_class: str) -> list[RawScoreEntry]:
        """Surviving entries for one statistic key, oldest first."""
        return list(
            RawScoreEntry.objects.filter(member_id=member_id, weapon_class=weapon_class)
            .order_by("training_date", "id")
        )

    @staticmethod
    def get_entry_by_id(entry_id: int, for_update: bool = False) -> RawScoreEntry | None:
        qs = RawScoreEntry.objects.filter(id=entry_id)
        if for_update:
            qs = qs.select_for_update()
        return qs.first()

    @staticmethod
    def insert_entry(entry: RawScoreEntry) -> RawScoreEntry:
        entry.save()
        return entry

    @staticmethod
    def update_entry(entry: RawScoreEntry) -> RawScoreEntry:
        """Update an existing row; never inserts one that was deleted meanwhile."""
        try:
            entry.save(force_update=True)
        except DatabaseError as exc:
            raise EntryNotFoundError() from exc
        return entry

    @staticmethod
    def delete_entry(entry: RawScoreEntry) -> None:
        entry.delete()

    @staticmethod
    def get_participated_competition_ids(member_id: int) -> set[int]:
        return set(
            CompetitionParticipant.objects.filter(member_id=member_id)
            .values_list("competition_id", flat=True)
        )

    @staticmethod
    def get_competition(competition_id: int) -> Competition | None:
        return Competition.objects.filter(id=competition_id).first()

    @staticmethod
    def get_competition_date(competition_id: int) -> date | None:
        return (
            Competition.objects.filter(id=competition_id)
            .values_list("competition_date", flat=True)
            .first()
        )

    @staticmethod
    def get_official_result_document(competition_id: int) -> str | None:
        """Raw JSON text of the competition's final results document, if any."""
        return (
            CompetitionResult.objects.filter(
                competition_id=competition_id,
                name=CompetitionResult.FINAL_RESULTS_NAME,
            )
            .order_by("-updated_at", "-id")
            .values_list("result_data", flat=True)
            .first()
        )

    @staticmethod
    def get_statistic(member_id: int, weapon_class: str, for_update: bool = False) -> ShooterStatistic | None:
        qs = ShooterStatistic.objects.filter(
            member_id=member_id,
            weapon_class=weapon_class,
            discipline=ShooterStatistic.DISCIPLINE_PRECISION,
        )
        if for_update:
            qs = qs.select_for_update()
        return qs.first()

    @staticmethod
    def get_all_statistics(member_id: int) -> list[ShooterStatistic]:
        return list(
            ShooterStatistic.objects.filter(
                member_id=member_id, discipline=ShooterStatistic.DISCIPLINE_PRECISION
            ).order_by("weapon_class")
        )

    @staticmethod
    def save_statistic(statistic: ShooterStatistic) -> ShooterStatistic:
        statistic.save()
        return statistic

    @staticmethod
    def delete_statistic(statistic: ShooterStatistic) -> None:
        statistic.delete()

    @staticmethod
    def weapon_classes_for_member(member_id: int) -> set[str]:
        """Every weapon class the member has entries or a statistic for."""
        from_entries = RawScoreEntry.objects.filter(member_id=member_id).values_list(
            "weapon_class", flat=True
        )
        from_stats = ShooterStatistic.objects.filter(member_id=member_id).values_list(
            "weapon_class", flat=True
        )
        return set(from_entries) | set(from_stats)
