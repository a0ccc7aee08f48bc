from django.test import SimpleTestCase

from .models import ShooterStatistic
from .services.handicap import HandicapCalculator

CLASS_1 = "Klass 1 - Nybörjare"
CLASS_2 = "Klass 2 - Guldmärkesskytt"
CLASS_3 = "Klass 3 - Riksmästare"


def statistic(completed_matches, average_per_series):
    return ShooterStatistic(
        weapon_class="A",
        completed_matches=completed_matches,
        average_per_series=average_per_series,
    )


class HandicapCalculatorTestCase(SimpleTestCase):
    def setUp(self):
        self.calculator = HandicapCalculator()

    def test_new_shooter_uses_provisional_average(self):
        profile = self.calculator.calculate_handicap(None, CLASS_1)

        self.assertTrue(profile.is_provisional)
        self.assertEqual(profile.effective_average, 44.0)
        self.assertEqual(profile.handicap_per_series, 4.0)
        self.assertEqual(profile.matches_until_full_handicap, 5)
        self.assertEqual(profile.completed_matches, 0)

    def test_top_class_starts_without_handicap(self):
        self.assertEqual(self.calculator.calculate_handicap(None, CLASS_3).handicap_per_series, 0.0)

    def test_provisional_average_converges_towards_actual(self):
        profile = self.calculator.calculate_handicap(statistic(2, 40.0), CLASS_2)

        # (46 * 3 + 40 * 2) / 5 = 43.6, handicap 4.4 rounds to 4.5
        self.assertEqual(profile.effective_average, 43.6)
        self.assertEqual(profile.handicap_per_series, 4.5)
        self.assertEqual(profile.matches_until_full_handicap, 3)

    def test_established_shooter_is_capped(self):
        profile = self.calculator.calculate_handicap(statistic(6, 30.0), CLASS_1)

        self.assertFalse(profile.is_provisional)
        self.assertEqual(profile.handicap_per_series, 10.0)
        self.assertEqual(profile.matches_until_full_handicap, 0)

    def test_strong_shooter_gets_negative_handicap(self):
        profile = self.calculator.calculate_handicap(statistic(5, 49.5), CLASS_3)

        self.assertEqual(profile.handicap_per_series, -1.5)

    def test_missing_or_unknown_class_raises(self):
        with self.assertRaises(ValueError):
            self.calculator.calculate_handicap(None, "")
        with self.assertRaises(ValueError):
            self.calculator.calculate_handicap(statistic(6, 45.0), "Klass 9")

    def test_round_to_quarter_rounds_halves_away_from_zero(self):
        self.assertEqual(HandicapCalculator.round_to_quarter(0.125), 0.25)
        self.assertEqual(HandicapCalculator.round_to_quarter(-0.125), -0.25)
        self.assertEqual(HandicapCalculator.round_to_quarter(2.3), 2.25)
        self.assertEqual(HandicapCalculator.round_to_quarter(2.4), 2.5)

    def test_series_final_score_is_capped(self):
        self.assertEqual(self.calculator.series_final_score(45, 7.25), 50)
        self.assertEqual(self.calculator.series_final_score(40, 4.25), 44)

    def test_match_final_score_is_capped(self):
        self.assertEqual(self.calculator.match_final_score(280, 4.5, 6), 300)
        self.assertEqual(self.calculator.match_final_score(200, 2.0, 6), 212)
