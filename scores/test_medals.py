from datetime import date
from unittest import mock

from django.core.cache import cache
from django.test import TestCase

from .repository import ScoreRepository
from .services.medals import MedalTally, MedalTallyService
from .testing import make_entry, make_member, make_official_result, official_shooter


class MedalTallyTestCase(TestCase):
    def test_points(self):
        tally = MedalTally(silver_count=2, bronze_count=3)

        self.assertEqual(tally.total_points, 7)
        self.assertEqual(
            tally.to_dict(), {"silver_count": 2, "bronze_count": 3, "total_points": 7}
        )

    def test_add_ignores_unknown_grades(self):
        tally = MedalTally()
        for grade in ("s", " B ", "G", "", None, "SB"):
            tally.add(grade)

        self.assertEqual((tally.silver_count, tally.bronze_count), (1, 1))


class MedalTallyServiceTestCase(TestCase):
    def setUp(self):
        cache.clear()
        self.member = make_member()
        self.service = MedalTallyService()

    def test_silver_from_external_competition_entry(self):
        make_entry(
            self.member, date(2024, 8, 1), [47, 48], is_competition=True, competition_medal="S"
        )

        tally_2024 = self.service.tally(self.member.id, 2024)
        tally_2023 = self.service.tally(self.member.id, 2023)

        self.assertEqual((tally_2024.silver_count, tally_2024.total_points), (1, 2))
        self.assertEqual(tally_2023.to_dict(), {"silver_count": 0, "bronze_count": 0, "total_points": 0})

    def test_training_entries_never_count(self):
        # Medals are only kept on competition entries by the entry service,
        # but rows written elsewhere must not leak into the tally either.
        make_entry(self.member, date(2024, 8, 1), [47], competition_medal="S")

        self.assertEqual(self.service.tally(self.member.id, 2024).silver_count, 0)

    def test_official_documents_counted_by_competition_year(self):
        make_official_result(
            date(2024, 5, 10),
            {
                "A": [official_shooter(self.member.id, [["10"] * 5], medal="b")],
                "C": [official_shooter(self.member.id, [["9"] * 5], shooting_class="C", medal="S")],
            },
            member_ids=[self.member.id],
        )
        make_official_result(
            date(2023, 5, 10),
            {"A": [official_shooter(self.member.id, [["10"] * 5], medal="S")]},
            member_ids=[self.member.id],
        )

        tally = self.service.tally(self.member.id, 2024)

        self.assertEqual((tally.silver_count, tally.bronze_count, tally.total_points), (1, 1, 3))
        self.assertEqual(self.service.tally(self.member.id, 2023).silver_count, 1)

    def test_both_sources_are_summed(self):
        make_entry(
            self.member, date(2024, 8, 1), [47], is_competition=True, competition_medal="B"
        )
        make_official_result(
            date(2024, 5, 10),
            {"A": [official_shooter(self.member.id, [["10"] * 5], medal="S")]},
            member_ids=[self.member.id],
        )

        tally = self.service.tally(self.member.id, 2024)

        self.assertEqual(tally.total_points, 3)

    def test_new_entry_invalidates_cached_tally(self):
        self.assertEqual(self.service.tally(self.member.id, 2024).total_points, 0)

        make_entry(
            self.member, date(2024, 8, 1), [47], is_competition=True, competition_medal="S"
        )

        self.assertEqual(self.service.tally(self.member.id, 2024).total_points, 2)

    def test_failing_source_is_skipped_and_not_cached(self):
        make_entry(
            self.member, date(2024, 8, 1), [47], is_competition=True, competition_medal="S"
        )
        make_official_result(
            date(2024, 5, 10),
            {"A": [official_shooter(self.member.id, [["10"] * 5], medal="B")]},
            member_ids=[self.member.id],
        )

        with mock.patch.object(
            ScoreRepository, "get_official_result_document", side_effect=RuntimeError("down")
        ):
            partial = self.service.tally(self.member.id, 2024)
        complete = self.service.tally(self.member.id, 2024)

        self.assertEqual(partial.to_dict()["total_points"], 2)
        self.assertEqual(complete.to_dict()["total_points"], 3)

    def test_tally_by_year(self):
        make_entry(
            self.member, date(2022, 8, 1), [47], is_competition=True, competition_medal="B"
        )

        tallies = self.service.tally_by_year(self.member.id, [2024, 2022])

        self.assertEqual(list(tallies), [2024, 2022])
        self.assertEqual(tallies[2022].bronze_count, 1)
        self.assertEqual(tallies[2024].total_points, 0)
