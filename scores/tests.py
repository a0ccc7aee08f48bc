from datetime import date
from unittest import mock

from django.core.cache import cache
from django.test import TestCase

from .models import RawScoreEntry
from .repository import ScoreRepository
from .services import cache_keys
from .services.aggregator import UnifiedResultsService
from .services.normalizer import (
    ResultNormalizer,
    SourceType,
    parse_result_document,
    score_shots,
    shot_value,
)
from .testing import make_entry, make_member, make_official_result, official_shooter


class ShotScoringTestCase(TestCase):
    def test_x_counts_ten_points_and_one_x(self):
        self.assertEqual(shot_value("X"), (10, 1))
        self.assertEqual(shot_value("x"), (10, 1))
        self.assertEqual(shot_value("9"), (9, 0))

    def test_unknown_shot_scores_zero(self):
        self.assertEqual(shot_value("?"), (0, 0))
        self.assertEqual(shot_value(None), (0, 0))

    def test_score_shots(self):
        self.assertEqual(score_shots(["X", "10", "9", "9", "8"]), (46, 1))

    def test_parse_result_document_rejects_malformed(self):
        self.assertIsNone(parse_result_document(None))
        self.assertIsNone(parse_result_document("{not json"))
        self.assertIsNone(parse_result_document('{"classGroups": "nope"}'))
        self.assertIsNone(parse_result_document("[1, 2]"))
        self.assertEqual(parse_result_document('{"classGroups": []}'), {"classGroups": []})


class ResultNormalizerTestCase(TestCase):
    def setUp(self):
        cache.clear()
        self.member = make_member()
        self.other = make_member(username="bo", name="Bo Berg")
        self.normalizer = ResultNormalizer()

    def test_raw_entries_are_tagged_by_competition_flag(self):
        make_entry(self.member, date(2024, 3, 1), [45, 46])
        make_entry(self.member, date(2024, 3, 2), [47], is_competition=True, competition_medal="s")

        entries = self.normalizer.normalize_member_results(self.member.id)

        by_date = {entry.date: entry for entry in entries}
        training = by_date[date(2024, 3, 1)]
        competition = by_date[date(2024, 3, 2)]
        self.assertEqual(training.source_type, SourceType.TRAINING)
        self.assertEqual(training.total_score, 91)
        self.assertEqual(training.series_count, 2)
        self.assertTrue(training.can_edit)
        self.assertEqual(competition.source_type, SourceType.COMPETITION)
        self.assertEqual(competition.medal, "S")
        self.assertTrue(competition.is_competition)

    def test_empty_and_zero_entries_are_excluded(self):
        RawScoreEntry.objects.create(
            member=self.member, training_date=date(2024, 3, 1), weapon_class="A", series=[]
        )
        make_entry(self.member, date(2024, 3, 2), [0, 0])

        self.assertEqual(self.normalizer.normalize_member_results(self.member.id), [])

    def test_official_document_yields_one_entry_per_class_group(self):
        make_official_result(
            date(2024, 5, 10),
            {
                "A-vapen": [
                    official_shooter(self.other.id, [["10"] * 5]),
                    official_shooter(
                        self.member.id,
                        [["X", "10", "9", "9", "8"], ["10", "10", "10", "9", "9"]],
                        medal="b",
                    ),
                ],
                "C-vapen": [
                    official_shooter(
                        self.member.id, [["9"] * 5], shooting_class="C1", encode_shots=False
                    ),
                ],
            },
            member_ids=[self.member.id, self.other.id],
        )

        entries = self.normalizer.normalize_member_results(self.member.id)

        self.assertEqual(len(entries), 2)
        by_class = {entry.weapon_class: entry for entry in entries}
        a_entry = by_class["A"]
        self.assertEqual(a_entry.source_type, SourceType.OFFICIAL)
        self.assertEqual(a_entry.total_score, 94)
        self.assertEqual(a_entry.x_count, 1)
        self.assertEqual(a_entry.series_count, 2)
        self.assertEqual(a_entry.medal, "B")
        self.assertEqual(a_entry.competition_name, "Klubbmästerskap")
        self.assertFalse(a_entry.can_edit)
        self.assertEqual(by_class["C"].total_score, 45)

    def test_explicit_total_wins_over_shots(self):
        shooter = official_shooter(self.member.id, [["10"] * 5])
        shooter.update({"totalScore": 290, "xCount": 7, "seriesCount": 6})
        make_official_result(date(2024, 5, 10), {"A": [shooter]}, member_ids=[self.member.id])

        [entry] = self.normalizer.normalize_member_results(self.member.id)

        self.assertEqual((entry.total_score, entry.x_count, entry.series_count), (290, 7, 6))

    def test_weapon_class_falls_back_to_group_name(self):
        shooter = official_shooter(self.member.id, [["10"] * 5], shooting_class="")
        make_official_result(date(2024, 5, 10), {"R-vapen": [shooter]}, member_ids=[self.member.id])

        [entry] = self.normalizer.normalize_member_results(self.member.id)

        self.assertEqual(entry.weapon_class, "R")

    def test_malformed_document_is_skipped(self):
        make_entry(self.member, date(2024, 3, 1), [45])
        make_official_result(date(2024, 5, 10), {}, member_ids=[self.member.id], raw="{broken")

        outcome = self.normalizer.collect(self.member.id)

        self.assertEqual(len(outcome.entries), 1)
        self.assertTrue(outcome.complete)

    def test_failing_source_keeps_other_sources(self):
        make_entry(self.member, date(2024, 3, 1), [45])
        make_official_result(
            date(2024, 5, 10),
            {"A": [official_shooter(self.member.id, [["10"] * 5])]},
            member_ids=[self.member.id],
        )

        with mock.patch.object(
            ScoreRepository, "get_raw_score_entries", side_effect=RuntimeError("db down")
        ):
            outcome = self.normalizer.collect(self.member.id)

        self.assertFalse(outcome.complete)
        self.assertEqual(outcome.failed_sources, ["raw_entries"])
        self.assertEqual([e.source_type for e in outcome.entries], [SourceType.OFFICIAL])

    def test_one_failing_competition_does_not_hide_others(self):
        first = make_official_result(
            date(2024, 5, 10),
            {"A": [official_shooter(self.member.id, [["10"] * 5])]},
            member_ids=[self.member.id],
            name="Vårcupen",
        )
        make_official_result(
            date(2024, 6, 10),
            {"A": [official_shooter(self.member.id, [["9"] * 5])]},
            member_ids=[self.member.id],
            name="Sommarcupen",
        )
        original = ScoreRepository.get_official_result_document

        def flaky(competition_id):
            if competition_id == first.id:
                raise RuntimeError("document store unavailable")
            return original(competition_id)

        with mock.patch.object(ScoreRepository, "get_official_result_document", side_effect=flaky):
            outcome = self.normalizer.collect(self.member.id)

        self.assertEqual([e.competition_name for e in outcome.entries], ["Sommarcupen"])
        self.assertEqual(outcome.failed_sources, [f"competition:{first.id}"])


class UnifiedResultsServiceTestCase(TestCase):
    def setUp(self):
        cache.clear()
        self.member = make_member()
        self.other = make_member(username="bo", name="Bo Berg")
        self.service = UnifiedResultsService()

    def test_results_are_sorted_most_recent_first(self):
        make_entry(self.member, date(2024, 1, 5), [40])
        make_entry(self.member, date(2024, 3, 5), [42])
        make_entry(self.member, date(2024, 2, 5), [41])

        results = self.service.get_member_results(self.member.id)

        self.assertEqual(
            [r.date for r in results],
            [date(2024, 3, 5), date(2024, 2, 5), date(2024, 1, 5)],
        )

    def test_same_day_raw_and_official_are_not_deduplicated(self):
        make_entry(self.member, date(2024, 5, 10), [45], is_competition=True)
        make_official_result(
            date(2024, 5, 10),
            {"A": [official_shooter(self.member.id, [["10"] * 5])]},
            member_ids=[self.member.id],
        )

        results = self.service.get_member_results(self.member.id)

        self.assertEqual(
            [r.source_type for r in results], [SourceType.COMPETITION, SourceType.OFFICIAL]
        )

    def test_skip_then_limit(self):
        for day in range(1, 6):
            make_entry(self.member, date(2024, 1, day), [40 + day])

        results = self.service.get_member_results(self.member.id, limit=2, skip=1)

        self.assertEqual([r.date.day for r in results], [4, 3])
        self.assertEqual(self.service.get_member_results(self.member.id, limit=0), [])

    def test_results_are_cached_until_member_is_invalidated(self):
        entry = make_entry(self.member, date(2024, 1, 5), [40], notes="first")
        self.assertEqual(self.service.get_member_results(self.member.id)[0].notes, "first")

        # Queryset updates bypass signals, so the cached timeline is still served.
        RawScoreEntry.objects.filter(id=entry.id).update(notes="second")
        self.assertEqual(self.service.get_member_results(self.member.id)[0].notes, "first")

        UnifiedResultsService.invalidate(self.member.id)
        self.assertEqual(self.service.get_member_results(self.member.id)[0].notes, "second")

    def test_saving_an_entry_invalidates_only_that_member(self):
        make_entry(self.other, date(2024, 1, 5), [40])
        self.service.get_member_results(self.other.id)
        other_key = cache_keys.results_key(self.other.id)
        member_key = cache_keys.results_key(self.member.id)

        make_entry(self.member, date(2024, 1, 6), [41])

        self.assertEqual(cache_keys.results_key(self.other.id), other_key)
        self.assertNotEqual(cache_keys.results_key(self.member.id), member_key)
        self.assertIsNotNone(cache.get(other_key))

    def test_partial_results_are_not_cached(self):
        make_entry(self.member, date(2024, 1, 5), [40])
        make_official_result(
            date(2024, 5, 10),
            {"A": [official_shooter(self.member.id, [["10"] * 5])]},
            member_ids=[self.member.id],
        )

        with mock.patch.object(
            ScoreRepository, "get_participated_competition_ids", side_effect=RuntimeError("down")
        ):
            partial = self.service.get_member_results(self.member.id)
        complete = self.service.get_member_results(self.member.id)

        self.assertEqual(len(partial), 1)
        self.assertEqual(len(complete), 2)
