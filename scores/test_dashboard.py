from datetime import date

from django.core.cache import cache
from django.test import TestCase

from .services.dashboard import DashboardService
from .services.entry_service import EntryService
from .testing import make_member, make_official_result, official_shooter


class DashboardServiceTestCase(TestCase):
    def setUp(self):
        cache.clear()
        self.member = make_member(shooter_class="Klass 2 - Guldmärkesskytt")
        self.entries = EntryService()
        self.dashboard = DashboardService()
        self.entries.record_entry(
            self.member.id,
            {"training_date": "2024-06-20", "weapon_class": "A", "series": [45, 46, 47, 44, 45, 46]},
        )
        self.entries.record_entry(
            self.member.id,
            {
                "training_date": "2024-06-01",
                "weapon_class": "A",
                "series": [40, 41, 42, 43, 44, 45],
                "is_competition": True,
                "competition_medal": "S",
            },
        )
        make_official_result(
            date(2024, 5, 10),
            {"A": [official_shooter(self.member.id, [["10", "10", "9", "9", "9"]] * 6, medal="B")]},
            member_ids=[self.member.id],
        )

    def test_unknown_member(self):
        for result in (
            self.dashboard.get_results(9999),
            self.dashboard.get_statistics(9999),
            self.dashboard.get_personal_bests(9999),
        ):
            self.assertFalse(result.success)

    def test_get_results(self):
        result = self.dashboard.get_results(self.member.id, limit=2)

        self.assertTrue(result.success)
        self.assertEqual(
            [r["source_type"] for r in result.data["results"]], ["Training", "Competition"]
        )

    def test_statistics_split_by_source(self):
        data = self.dashboard.get_statistics(self.member.id, now=date(2024, 6, 30)).data

        self.assertEqual(data["training_stats"]["total_sessions"], 1)
        self.assertEqual(data["competition_stats"]["total_sessions"], 2)
        self.assertEqual(data["combined_stats"]["total_sessions"], 3)
        self.assertEqual(data["training_stats"]["overall_average"], 45.5)
        # (42.5 + 47.0) / 2 = 44.75, published with one decimal
        self.assertEqual(data["competition_stats"]["overall_average"], 44.8)

    def test_statistics_payload(self):
        data = self.dashboard.get_statistics(self.member.id, now=date(2024, 6, 30)).data

        self.assertEqual(data["medal_stats"], {"silver_count": 1, "bronze_count": 1, "total_points": 3})
        self.assertEqual(data["available_years"], [2024])
        self.assertEqual(list(data["medal_stats_by_year"]), [2024])
        self.assertEqual(len(data["monthly_series"]), 3)
        self.assertEqual(
            [(pb["series_count"], pb["is_competition"]) for pb in data["personal_bests_by_series_count"]],
            [(6, False), (6, True)],
        )
        self.assertEqual(data["personal_bests_by_class"]["A"][1]["best_score"], 282)
        [statistic] = data["shooter_statistics"]
        self.assertEqual(statistic["completed_matches"], 2)
        self.assertEqual(data["handicap"]["A"]["is_provisional"], True)

    def test_handicap_is_none_without_shooter_class(self):
        self.member.shooter_class = ""
        self.member.save()

        data = self.dashboard.get_statistics(self.member.id, now=date(2024, 6, 30)).data

        self.assertIsNone(data["handicap"])
        self.assertEqual(len(data["shooter_statistics"]), 1)

    def test_personal_bests_without_competitions(self):
        result = self.dashboard.get_personal_bests(self.member.id, include_competitions=False)

        self.assertEqual([pb["is_competition"] for pb in result.data["A"]], [False])
