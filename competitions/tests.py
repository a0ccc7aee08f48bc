import json
from datetime import date

from django.core.cache import cache
from django.db import IntegrityError, transaction
from django.test import TestCase

from scores.models import Member
from scores.services import cache_keys
from scores.services.aggregator import UnifiedResultsService

from .models import Competition, CompetitionParticipant, CompetitionResult


class CompetitionDocumentTestCase(TestCase):
    def setUp(self):
        cache.clear()
        self.member = Member.objects.create(username="anna", name="Anna Andersson")
        self.competition = Competition.objects.create(
            name="Klubbmästerskap", competition_date=date(2024, 5, 10)
        )
        CompetitionParticipant.objects.create(competition=self.competition, member=self.member)

    def _document(self, shots):
        return json.dumps(
            {
                "classGroups": [
                    {
                        "className": "A",
                        "shooters": [
                            {"memberId": self.member.id, "results": [{"seriesNumber": 1, "shots": shots}]}
                        ],
                    }
                ]
            }
        )

    def test_participant_is_unique_per_competition(self):
        with self.assertRaises(IntegrityError), transaction.atomic():
            CompetitionParticipant.objects.create(competition=self.competition, member=self.member)

    def test_default_document_name_is_final_results(self):
        document = CompetitionResult.objects.create(competition=self.competition)

        self.assertEqual(document.name, CompetitionResult.FINAL_RESULTS_NAME)

    def test_publishing_results_invalidates_participants(self):
        service = UnifiedResultsService()
        self.assertEqual(service.get_member_results(self.member.id), [])
        key = cache_keys.results_key(self.member.id)

        CompetitionResult.objects.create(
            competition=self.competition, result_data=self._document(["10"] * 5)
        )

        self.assertNotEqual(cache_keys.results_key(self.member.id), key)
        [entry] = service.get_member_results(self.member.id)
        self.assertEqual(entry.total_score, 50)

    def test_only_final_results_document_is_read(self):
        CompetitionResult.objects.create(
            competition=self.competition, name="Startlista", result_data=self._document(["10"] * 5)
        )

        self.assertEqual(UnifiedResultsService().get_member_results(self.member.id), [])
