"""Fixture helpers shared by the scores test modules."""
import json
from datetime import date

from competitions.models import Competition, CompetitionParticipant, CompetitionResult

from .models import Member, RawScoreEntry
from .services.normalizer import ResultEntry, SourceType


def make_member(username="anna", name="Anna Andersson", shooter_class=""):
    return Member.objects.create(username=username, name=name, shooter_class=shooter_class)


def make_entry(member, training_date, totals, weapon_class="A", **extra):
    """Create a raw entry from plain series totals."""
    return RawScoreEntry.objects.create(
        member=member,
        training_date=training_date,
        weapon_class=weapon_class,
        series=[{"total": total, "x_count": 0, "entry_method": "SeriesTotal"} for total in totals],
        **extra,
    )


def make_official_result(competition_date, shooters_by_group, member_ids, name="Klubbmästerskap", raw=None):
    """
    Create a competition with a final-results document.

    ``shooters_by_group`` maps class-group names to lists of shooter dicts.
    """
    competition = Competition.objects.create(name=name, competition_date=competition_date)
    for member_id in member_ids:
        CompetitionParticipant.objects.create(competition=competition, member_id=member_id)
    if raw is None:
        raw = json.dumps(
            {
                "competitionId": competition.id,
                "isOfficial": True,
                "classGroups": [
                    {"className": class_name, "shooters": shooters}
                    for class_name, shooters in shooters_by_group.items()
                ],
            }
        )
    CompetitionResult.objects.create(competition=competition, result_data=raw)
    return competition


def official_shooter(member_id, shots_per_series, shooting_class="A3", medal="", encode_shots=True):
    return {
        "memberId": member_id,
        "name": f"Member {member_id}",
        "shootingClass": shooting_class,
        "standardMedal": medal,
        "results": [
            {
                "seriesNumber": number,
                "shots": json.dumps(shots) if encode_shots else shots,
            }
            for number, shots in enumerate(shots_per_series, start=1)
        ],
    }


def result_entry(
    entry_date,
    total_score,
    series_count=3,
    weapon_class="A",
    source_type=SourceType.TRAINING,
    x_count=0,
    entry_id=None,
    member_id=1,
):
    return ResultEntry(
        member_id=member_id,
        date=entry_date if isinstance(entry_date, date) else date.fromisoformat(entry_date),
        weapon_class=weapon_class,
        series_count=series_count,
        total_score=total_score,
        x_count=x_count,
        source_type=source_type,
        entry_id=entry_id,
    )
