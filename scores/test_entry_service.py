from datetime import date
from unittest import mock

from django.core.cache import cache
from django.test import TestCase

from .exceptions import EntryNotFoundError
from .models import RawScoreEntry, ShooterStatistic
from .repository import ScoreRepository
from .services.dashboard import DashboardService
from .services.entry_service import EntryService
from .services.shooter_statistics import replay
from .testing import make_entry, make_member


def entry_data(training_date="2024-03-01", series=(45, 46, 47), weapon_class="A", **extra):
    return {
        "training_date": training_date,
        "weapon_class": weapon_class,
        "series": list(series),
        **extra,
    }


class EntryValidationTestCase(TestCase):
    def setUp(self):
        cache.clear()
        self.member = make_member()
        self.service = EntryService()

    def assertRejected(self, data, member_id=None, today=None):
        result = self.service.record_entry(member_id or self.member.id, data, today=today)
        self.assertFalse(result.success)
        self.assertTrue(result.message)
        self.assertFalse(RawScoreEntry.objects.exists())
        return result

    def test_unknown_weapon_class(self):
        self.assertRejected(entry_data(weapon_class="Z"))

    def test_unknown_member(self):
        self.assertRejected(entry_data(), member_id=self.member.id + 100)

    def test_missing_or_future_date(self):
        self.assertRejected(entry_data(training_date=None))
        self.assertRejected(entry_data(training_date="not a date"))
        self.assertRejected(entry_data(training_date="2024-03-02"), today=date(2024, 3, 1))

    def test_series_count_bounds(self):
        self.assertRejected(entry_data(series=[]))
        self.assertRejected(entry_data(series=[45] * 25))

    def test_shot_by_shot_needs_five_valid_shots(self):
        self.assertRejected(entry_data(series=[{"shots": ["10", "9", "9", "8"]}]))
        self.assertRejected(entry_data(series=[{"shots": ["10", "9", "9", "8", "11"]}]))

    def test_negative_values(self):
        self.assertRejected(entry_data(series=[-1]))
        self.assertRejected(entry_data(series=[{"total": 40, "x_count": -1}]))

    def test_series_total_with_shots_is_rejected(self):
        self.assertRejected(
            entry_data(series=[{"entry_method": "SeriesTotal", "total": 40, "shots": ["10"] * 5}])
        )

    def test_unknown_medal_and_bad_place(self):
        self.assertRejected(entry_data(is_competition=True, competition_medal="G"))
        self.assertRejected(entry_data(is_competition=True, competition_place=0))

    def test_shot_by_shot_totals_are_computed(self):
        result = self.service.record_entry(
            self.member.id,
            entry_data(series=[{"shots": ["X", "10", "9", "8", "7"]}, {"shots": ["x"] * 5}]),
        )

        self.assertTrue(result.success)
        entry = RawScoreEntry.objects.get()
        self.assertEqual((entry.total_score, entry.x_count, entry.series_count), (94, 6, 2))
        self.assertEqual(entry.series[1]["shots"], ["X"] * 5)
        self.assertEqual(entry.series[0]["entry_method"], "ShotByShot")

    def test_bare_integers_are_series_totals(self):
        result = self.service.record_entry(self.member.id, entry_data(series=[95, 96, 94]))

        self.assertTrue(result.success)
        self.assertEqual(result.data["total_score"], 285)
        self.assertEqual(result.data["series_count"], 3)
        self.assertEqual(
            RawScoreEntry.objects.get().series[0],
            {"total": 95, "x_count": 0, "entry_method": "SeriesTotal"},
        )

    def test_competition_fields_are_dropped_for_training(self):
        self.service.record_entry(
            self.member.id, entry_data(competition_medal="s", competition_place=2)
        )

        entry = RawScoreEntry.objects.get()
        self.assertEqual(entry.competition_medal, "")
        self.assertIsNone(entry.competition_place)

    def test_medal_is_stored_upper_case(self):
        self.service.record_entry(
            self.member.id, entry_data(is_competition=True, competition_medal="b", competition_place=3)
        )

        entry = RawScoreEntry.objects.get()
        self.assertEqual((entry.competition_medal, entry.competition_place), ("B", 3))


class EntryLifecycleTestCase(TestCase):
    def setUp(self):
        cache.clear()
        self.member = make_member()
        self.other = make_member(username="bo", name="Bo Berg")
        self.service = EntryService()
        self.dashboard = DashboardService()

    def _statistic(self, weapon_class):
        return ShooterStatistic.objects.filter(member=self.member, weapon_class=weapon_class).first()

    def _expected_state(self, weapon_class):
        entries = ScoreRepository.get_entries_for_replay(self.member.id, weapon_class)
        return replay((e.series_count, e.total_score) for e in entries)

    def test_personal_best_across_two_training_days(self):
        self.service.record_entry(self.member.id, entry_data("2024-03-01", [95, 96, 94]))
        self.service.record_entry(self.member.id, entry_data("2024-03-03", [98, 97, 99]))

        result = self.dashboard.get_personal_bests(
            self.member.id, weapon_class="A", include_competitions=False
        )

        self.assertTrue(result.success)
        [best] = [pb for pb in result.data["A"] if pb["series_count"] == 3]
        self.assertEqual(best["best_score"], 294)
        self.assertEqual(best["achieved_date"], "2024-03-03")
        self.assertFalse(best["is_competition"])

    def test_record_updates_statistic(self):
        self.service.record_entry(self.member.id, entry_data(series=[45, 46]))
        self.service.record_entry(self.member.id, entry_data(series=[40]))

        statistic = self._statistic("A")
        self.assertEqual(statistic.completed_matches, 2)
        self.assertEqual(statistic.total_series_points, 131)

    def test_results_reflect_writes_immediately(self):
        self.assertEqual(self.dashboard.get_results(self.member.id).data["count"], 0)

        self.service.record_entry(self.member.id, entry_data())

        self.assertEqual(self.dashboard.get_results(self.member.id).data["count"], 1)

    def test_edit_moving_entry_to_other_class_recalculates_both(self):
        keep = self.service.record_entry(self.member.id, entry_data("2024-03-01", [45, 45]))
        moved = self.service.record_entry(self.member.id, entry_data("2024-03-02", [40, 41]))

        result = self.service.edit_entry(
            moved.data["id"], self.member.id, entry_data("2024-03-02", [40, 41], weapon_class="B")
        )

        self.assertTrue(result.success)
        a_stat, b_stat = self._statistic("A"), self._statistic("B")
        self.assertEqual((a_stat.completed_matches, a_stat.total_series_points), (1, 90))
        self.assertEqual((b_stat.completed_matches, b_stat.total_series_points), (1, 81))
        self.assertEqual(a_stat.total_series_points, self._expected_state("A").total_series_points)
        self.assertTrue(keep.success)

    def test_edit_last_entry_of_class_resets_it(self):
        created = self.service.record_entry(self.member.id, entry_data(series=[45]))

        self.service.edit_entry(
            created.data["id"], self.member.id, entry_data(series=[45], weapon_class="C")
        )

        self.assertIsNone(self._statistic("A"))
        self.assertEqual(self._statistic("C").completed_matches, 1)

    def test_delete_recalculates(self):
        first = self.service.record_entry(self.member.id, entry_data("2024-03-01", [45]))
        self.service.record_entry(self.member.id, entry_data("2024-03-02", [40]))

        result = self.service.delete_entry(first.data["id"], self.member.id)

        self.assertTrue(result.success)
        self.assertEqual(self._statistic("A").total_series_points, 40)
        self.assertEqual(self.dashboard.get_results(self.member.id).data["count"], 1)

    def test_delete_only_entry_removes_statistic(self):
        created = self.service.record_entry(self.member.id, entry_data())

        self.service.delete_entry(created.data["id"], self.member.id)

        self.assertIsNone(self._statistic("A"))

    def test_edits_in_any_order_match_full_replay(self):
        first = self.service.record_entry(self.member.id, entry_data("2024-03-01", [45, 45]))
        second = self.service.record_entry(self.member.id, entry_data("2024-03-02", [40, 41]))
        self.service.record_entry(self.member.id, entry_data("2024-03-03", [30]))

        self.service.edit_entry(second.data["id"], self.member.id, entry_data("2024-03-02", [48, 49]))
        self.service.edit_entry(first.data["id"], self.member.id, entry_data("2024-03-01", [44]))

        expected = self._expected_state("A")
        statistic = self._statistic("A")
        self.assertEqual(statistic.completed_matches, expected.completed_matches)
        self.assertEqual(statistic.total_series_count, expected.total_series_count)
        self.assertEqual(statistic.total_series_points, 44 + 97 + 30)

    def test_other_members_entry_cannot_be_changed(self):
        foreign = make_entry(self.other, date(2024, 3, 1), [45, 46])

        edit = self.service.edit_entry(foreign.id, self.member.id, entry_data(series=[10]))
        delete = self.service.delete_entry(foreign.id, self.member.id)

        self.assertFalse(edit.success)
        self.assertFalse(delete.success)
        foreign.refresh_from_db()
        self.assertEqual(foreign.total_score, 91)

    def test_missing_entry(self):
        result = self.service.delete_entry(9999, self.member.id)

        self.assertFalse(result.success)
        self.assertEqual(result.message, "Resultatet hittades inte.")

    def test_failed_recalculation_rolls_back_edit(self):
        created = self.service.record_entry(self.member.id, entry_data(series=[45, 46]))

        with mock.patch.object(
            ScoreRepository, "get_entries_for_replay", side_effect=RuntimeError("db down")
        ):
            result = self.service.edit_entry(
                created.data["id"], self.member.id, entry_data(series=[10])
            )

        self.assertFalse(result.success)
        self.assertEqual(RawScoreEntry.objects.get().total_score, 91)
        self.assertEqual(self._statistic("A").total_series_points, 91)

    def test_failed_recalculation_rolls_back_delete(self):
        created = self.service.record_entry(self.member.id, entry_data(series=[45, 46]))

        with mock.patch.object(
            ScoreRepository, "get_entries_for_replay", side_effect=RuntimeError("db down")
        ):
            result = self.service.delete_entry(created.data["id"], self.member.id)

        self.assertFalse(result.success)
        self.assertTrue(RawScoreEntry.objects.filter(id=created.data["id"]).exists())

    def _interleaved(self, concurrent):
        """Run ``concurrent`` once, after an edit has read the entry but before it writes."""
        original = EntryService.validate
        pending = [concurrent]

        def validate(service, *args, **kwargs):
            if pending:
                pending.pop()()
            return original(service, *args, **kwargs)

        return mock.patch.object(EntryService, "validate", validate)

    def test_edit_after_concurrent_class_change_recalculates_current_class(self):
        self.service.record_entry(self.member.id, entry_data("2024-03-01", [45, 45]))
        moved = self.service.record_entry(self.member.id, entry_data("2024-03-02", [40, 41]))
        entry_id = moved.data["id"]

        with self._interleaved(
            lambda: self.service.edit_entry(
                entry_id, self.member.id, entry_data("2024-03-02", [30, 31], weapon_class="C")
            )
        ):
            result = self.service.edit_entry(
                entry_id, self.member.id, entry_data("2024-03-02", [48], weapon_class="B")
            )

        self.assertTrue(result.success)
        self.assertEqual(RawScoreEntry.objects.get(id=entry_id).weapon_class, "B")
        self.assertIsNone(self._statistic("C"))
        for weapon_class in ("A", "B"):
            statistic = self._statistic(weapon_class)
            expected = self._expected_state(weapon_class)
            self.assertEqual(statistic.completed_matches, expected.completed_matches)
            self.assertEqual(statistic.total_series_points, expected.total_series_points)
        self.assertEqual(self._statistic("B").total_series_points, 48)

    def test_edit_of_concurrently_deleted_entry_does_not_resurrect_it(self):
        created = self.service.record_entry(self.member.id, entry_data(series=[45, 46]))
        entry_id = created.data["id"]

        with self._interleaved(lambda: self.service.delete_entry(entry_id, self.member.id)):
            result = self.service.edit_entry(entry_id, self.member.id, entry_data(series=[10]))

        self.assertFalse(result.success)
        self.assertEqual(result.message, "Resultatet hittades inte.")
        self.assertEqual(RawScoreEntry.objects.count(), 0)
        self.assertIsNone(self._statistic("A"))

    def test_update_of_deleted_row_is_not_an_insert(self):
        entry = make_entry(self.member, date(2024, 3, 1), [45, 46])
        RawScoreEntry.objects.filter(id=entry.id).delete()

        with self.assertRaises(EntryNotFoundError):
            ScoreRepository.update_entry(entry)

        self.assertFalse(RawScoreEntry.objects.exists())

    def test_interleaved_mutations_on_one_key_match_full_replay(self):
        first = self.service.record_entry(self.member.id, entry_data("2024-03-01", [45, 46]))
        second = self.service.record_entry(self.member.id, entry_data("2024-03-02", [44]))
        third = self.service.record_entry(self.member.id, entry_data("2024-03-03", [47, 47, 47]))

        with self._interleaved(lambda: self.service.delete_entry(second.data["id"], self.member.id)):
            self.service.edit_entry(first.data["id"], self.member.id, entry_data("2024-03-01", [30]))
        with self._interleaved(
            lambda: self.service.edit_entry(
                first.data["id"], self.member.id, entry_data("2024-03-01", [39], weapon_class="B")
            )
        ):
            self.service.edit_entry(third.data["id"], self.member.id, entry_data("2024-03-03", [50, 49]))

        self.assertEqual(RawScoreEntry.objects.count(), 2)
        for weapon_class in ("A", "B"):
            statistic = self._statistic(weapon_class)
            expected = self._expected_state(weapon_class)
            self.assertEqual(statistic.completed_matches, expected.completed_matches)
            self.assertEqual(statistic.total_series_count, expected.total_series_count)
            self.assertEqual(statistic.total_series_points, expected.total_series_points)
        self.assertEqual(self._statistic("A").total_series_points, 99)
        self.assertEqual(self._statistic("B").total_series_points, 39)
