from django.contrib import admin, messages
from django.db import transaction

from .exceptions import ConcurrentModificationError, ScoreEngineError
from .models import Member, RawScoreEntry, ShooterStatistic
from .services.shooter_statistics import ShooterStatisticsService


@admin.register(Member)
class MemberAdmin(admin.ModelAdmin):
    list_display = ("name", "username", "shooter_class", "created_at")
    list_filter = ("shooter_class",)
    search_fields = ("name", "username")


@admin.register(RawScoreEntry)
class RawScoreEntryAdmin(admin.ModelAdmin):
    list_display = (
        "training_date",
        "member",
        "weapon_class",
        "is_competition",
        "display_series_count",
        "total_score",
        "x_count",
        "competition_medal",
    )
    list_filter = ("weapon_class", "is_competition", "competition_medal")
    search_fields = ("member__name", "member__username", "notes")
    readonly_fields = ("total_score", "x_count", "created_at", "updated_at")
    autocomplete_fields = ("member",)
    date_hierarchy = "training_date"

    @admin.display(description="Serier")
    def display_series_count(self, obj):
        return obj.series_count

    def _rebuild_statistics(self, request, obj, keys, write):
        """
        Run an admin write and rebuild the statistics it touches in one
        transaction, holding the same key locks as ``EntryService``.
        """
        service = ShooterStatisticsService()
        try:
            with service.locks.hold_many(keys), transaction.atomic():
                if obj.pk:
                    current = (
                        RawScoreEntry.objects.select_for_update()
                        .filter(pk=obj.pk)
                        .values_list("member_id", "weapon_class")
                        .first()
                    )
                    if current is not None and tuple(current) not in keys:
                        raise ConcurrentModificationError()
                write()
                for member_id, weapon_class in sorted(keys):
                    service.recalculate_from_history(member_id, weapon_class)
        except ScoreEngineError as exc:
            self.message_user(request, exc.message, level=messages.ERROR)

    def save_model(self, request, obj, form, change):
        keys = {(obj.member_id, obj.weapon_class)}
        if change and obj.pk:
            previous = (
                RawScoreEntry.objects.filter(pk=obj.pk).values_list("member_id", "weapon_class").first()
            )
            if previous is not None:
                keys.add(tuple(previous))
        # Admin edits skip EntryService, so rebuild the affected statistics here.
        self._rebuild_statistics(
            request, obj, keys, lambda: super(RawScoreEntryAdmin, self).save_model(request, obj, form, change)
        )

    def delete_model(self, request, obj):
        self._rebuild_statistics(
            request,
            obj,
            {(obj.member_id, obj.weapon_class)},
            lambda: super(RawScoreEntryAdmin, self).delete_model(request, obj),
        )


@admin.register(ShooterStatistic)
class ShooterStatisticAdmin(admin.ModelAdmin):
    list_display = (
        "member",
        "weapon_class",
        "completed_matches",
        "total_series_count",
        "total_series_points",
        "average_per_series",
        "last_calculated",
    )
    list_filter = ("weapon_class",)
    search_fields = ("member__name", "member__username")
    readonly_fields = (
        "completed_matches",
        "total_series_count",
        "total_series_points",
        "average_per_series",
        "last_calculated",
    )
