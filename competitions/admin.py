from django import forms
from django.contrib import admin

from .models import Competition, CompetitionParticipant, CompetitionResult


class CompetitionResultInline(admin.StackedInline):
    model = CompetitionResult
    extra = 0
    fields = ("name", "result_data")


class CompetitionParticipantInline(admin.TabularInline):
    model = CompetitionParticipant
    extra = 1
    fields = ("member", "shooting_class")
    autocomplete_fields = ("member",)


@admin.register(Competition)
class CompetitionAdmin(admin.ModelAdmin):
    list_display = ("name", "display_date", "participant_count", "created_at")
    search_fields = ("name",)
    ordering = ("-competition_date",)
    inlines = [CompetitionParticipantInline, CompetitionResultInline]

    @admin.display(description="Datum")
    def display_date(self, obj):
        return obj.competition_date.strftime("%Y-%m-%d") if obj.competition_date else "-"

    @admin.display(description="Deltagare")
    def participant_count(self, obj):
        return obj.participants.count()


class CompetitionResultAdminForm(forms.ModelForm):
    class Meta:
        model = CompetitionResult
        fields = "__all__"
        widgets = {
            "result_data": forms.Textarea(attrs={"rows": 20, "cols": 100}),
        }


@admin.register(CompetitionResult)
class CompetitionResultAdmin(admin.ModelAdmin):
    form = CompetitionResultAdminForm
    list_display = ("competition", "name", "updated_at")
    list_filter = ("name",)
    search_fields = ("competition__name",)
