from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from competitions.models import CompetitionParticipant, CompetitionResult

from .models import RawScoreEntry
from .services import cache_keys


@receiver(post_save, sender=RawScoreEntry)
@receiver(post_delete, sender=RawScoreEntry)
def invalidate_after_entry_change(sender, instance, **kwargs):
    """Covers writes that bypass EntryService, such as the admin."""
    cache_keys.invalidate_member(instance.member_id)


@receiver(post_save, sender=CompetitionParticipant)
@receiver(post_delete, sender=CompetitionParticipant)
def invalidate_after_participation_change(sender, instance, **kwargs):
    cache_keys.invalidate_member(instance.member_id)


@receiver(post_save, sender=CompetitionResult)
@receiver(post_delete, sender=CompetitionResult)
def invalidate_after_result_document_change(sender, instance, **kwargs):
    """A published result document affects every participant of the competition."""
    member_ids = CompetitionParticipant.objects.filter(
        competition_id=instance.competition_id
    ).values_list("member_id", flat=True)
    for member_id in member_ids:
        cache_keys.invalidate_member(member_id)
