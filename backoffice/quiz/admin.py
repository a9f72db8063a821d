from django.contrib import admin, messages
from django.core.exceptions import PermissionDenied
from django.db.models import Count
from django.http import JsonResponse
from django.shortcuts import get_object_or_404, redirect
from django.urls import path, reverse
from django.utils.html import format_html

from common.admin_helpers import badge, next_url, render_confirmation, truncate, user_link

from .forms import (
    DifficultyAdminForm,
    PackAdminForm,
    QuestionAdminForm,
    QuestionAnswerForm,
    QuestionAnswerFormSet,
)
from .models import Category, Difficulty, Pack, PackStatus, Question, QuestionAnswer


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "slug", "packs_count", "created_at")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(_packs_count=Count("packs", distinct=True))

    @admin.display(description="Packs", ordering="_packs_count")
    def packs_count(self, obj):
        return badge(obj._packs_count, "info")


@admin.register(Difficulty)
class DifficultyAdmin(admin.ModelAdmin):
    form = DifficultyAdminForm
    list_display = ("id", "name", "slug", "level", "color_swatch", "packs_count", "created_at", "updated_at")
    search_fields = ("name", "slug")
    ordering = ("level", "name")
    delete_confirmation_template = "admin/quiz/difficulty/delete_confirmation.html"
    delete_selected_confirmation_template = "admin/quiz/difficulty/delete_selected_confirmation.html"

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(_packs_count=Count("packs", distinct=True))

    @admin.display(description="Color")
    def color_swatch(self, obj):
        return format_html(
            '<span style="display:inline-block;width:18px;height:18px;border-radius:50%;background:{};" title="{}"></span>',
            obj.color, obj.color,
        )

    @admin.display(description="Packs", ordering="_packs_count")
    def packs_count(self, obj):
        return badge(obj._packs_count, "info")

    def navigation_badge(self, request):
        return Difficulty.objects.count()


class PackQuestionInline(admin.TabularInline):
    """Questions of a pack; editing happens on the question screens."""

    model = Question
    extra = 0
    show_change_link = True
    fields = ("number", "short_name", "is_free", "answers_count", "created_at")
    readonly_fields = fields
    ordering = ("number",)

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(_answers_count=Count("answers", distinct=True))

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    @admin.display(description="Name")
    def short_name(self, obj):
        return truncate(obj.name, 75)

    @admin.display(description="Answers")
    def answers_count(self, obj):
        return badge(obj._answers_count, "info")


@admin.register(Pack)
class PackAdmin(admin.ModelAdmin):
    form = PackAdminForm
    list_display = (
        "id",
        "owner",
        "category_badge",
        "difficulty_badge",
        "uuid",
        "short_name",
        "status_badge",
        "questions_count",
        "status_action",
        "created_at",
        "updated_at",
    )
    list_filter = ("user", "category", "difficulty", "status")
    search_fields = ("name", "uuid", "user__email", "category__name", "difficulty__name")
    list_select_related = ("user", "category", "difficulty")
    radio_fields = {"status": admin.HORIZONTAL}
    inlines = [PackQuestionInline]
    actions = ("publish_packs", "draft_packs")

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(_questions_count=Count("questions", distinct=True))

    def get_fieldsets(self, request, obj=None):
        general = ["user", "category", "difficulty", "name", "description", "status"]
        if obj is None:
            return [(None, {"fields": general})]
        return [
            (None, {"fields": ["uuid"] + general}),
            ("Questions", {"fields": ["add_question_link"]}),
        ]

    def get_readonly_fields(self, request, obj=None):
        if obj is None:
            return ()
        return ("uuid", "add_question_link")

    def get_form(self, request, obj=None, **kwargs):
        form = super().get_form(request, obj, **kwargs)
        form.current_user = request.user
        return form

    def get_urls(self):
        urls = super().get_urls()
        custom = [
            path(
                "<int:object_id>/status/",
                self.admin_site.admin_view(self.toggle_status_view),
                name="quiz_pack_toggle_status",
            ),
        ]
        return custom + urls

    @admin.display(description="Owner", ordering="user__email")
    def owner(self, obj):
        return user_link(obj.user)

    @admin.display(description="Category", ordering="category__name")
    def category_badge(self, obj):
        return badge(obj.category.name, "info")

    @admin.display(description="Difficulty", ordering="difficulty__name")
    def difficulty_badge(self, obj):
        if obj.difficulty is None:
            return "-"
        return badge(obj.difficulty.name, color=obj.difficulty.color)

    @admin.display(description="Name", ordering="name")
    def short_name(self, obj):
        return truncate(obj.name, 50)

    @admin.display(description="Status", ordering="status")
    def status_badge(self, obj):
        return badge(obj.status.upper(), "success" if obj.is_published else "danger")

    @admin.display(description="Questions", ordering="_questions_count")
    def questions_count(self, obj):
        return badge(obj._questions_count, "info")

    @admin.display(description="")
    def status_action(self, obj):
        url = reverse("admin:quiz_pack_toggle_status", args=[obj.pk])
        label = "Return to Draft" if obj.is_published else "Publish"
        return format_html('<a class="button" href="{}">{}</a>', url, label)

    @admin.display(description="Add question")
    def add_question_link(self, obj):
        url = reverse("admin:quiz_question_add") + f"?pack={obj.pk}"
        return format_html('<a class="addlink" href="{}">Add question to this pack</a>', url)

    def toggle_status_view(self, request, object_id):
        pack = get_object_or_404(Pack, pk=object_id)
        if not self.has_change_permission(request, pack):
            raise PermissionDenied
        changelist = reverse("admin:quiz_pack_changelist")
        if request.method == "POST":
            status = pack.toggle_status()
            self.message_user(request, f"Pack status changed to {status.upper()}", messages.SUCCESS)
            return redirect(next_url(request, changelist))
        verb = "return to draft" if pack.is_published else "publish"
        return render_confirmation(
            self, request, pack,
            title=f"{verb.capitalize()} pack",
            question=f'Do you want to {verb} the pack "{pack.name}"?',
            submit_label="Return to Draft" if pack.is_published else "Publish",
        )

    @admin.action(description="Publish selected packs", permissions=["change"])
    def publish_packs(self, request, queryset):
        updated = queryset.update(status=PackStatus.PUBLISHED)
        self.message_user(request, f"Pack status changed to PUBLISHED ({updated})", messages.SUCCESS)

    @admin.action(description="Return selected packs to draft", permissions=["change"])
    def draft_packs(self, request, queryset):
        updated = queryset.update(status=PackStatus.DRAFT)
        self.message_user(request, f"Pack status changed to DRAFT ({updated})", messages.SUCCESS)

    def navigation_badge(self, request):
        return Pack.objects.count()


class QuestionAnswerInline(admin.StackedInline):
    model = QuestionAnswer
    form = QuestionAnswerForm
    formset = QuestionAnswerFormSet
    verbose_name = "answer"
    verbose_name_plural = "Answers"
    min_num = 2
    max_num = 10
    extra = 0

    def get_formset(self, request, obj=None, **kwargs):
        # InlineModelAdmin does not forward these to the formset factory
        kwargs.setdefault("validate_min", True)
        kwargs.setdefault("validate_max", True)
        return super().get_formset(request, obj, **kwargs)


@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    form = QuestionAdminForm
    list_display = (
        "id",
        "uuid",
        "short_name",
        "category_badge",
        "pack_badge",
        "number",
        "is_free",
        "answers_count",
        "created_at",
        "updated_at",
    )
    list_filter = ("pack", "pack__category", "is_free")
    search_fields = ("name", "uuid")
    list_select_related = ("pack", "pack__category")
    inlines = [QuestionAnswerInline]
    fieldsets = (
        ("General", {"fields": ("pack", "name", "number", "is_free")}),
        ("Description", {"fields": ("description",)}),
    )

    class Media:
        js = ("quiz/js/question_form.js",)

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(_answers_count=Count("answers", distinct=True))

    def get_changeform_initial_data(self, request):
        initial = super().get_changeform_initial_data(request)
        pack = initial.get("pack")
        if pack and str(pack).isdigit():
            initial["number"] = Question.next_number(int(pack))
        return initial

    def get_urls(self):
        urls = super().get_urls()
        custom = [
            path(
                "next-number/",
                self.admin_site.admin_view(self.next_number_view),
                name="quiz_question_next_number",
            ),
        ]
        return custom + urls

    def next_number_view(self, request):
        """Number the form should show after the pack select changes."""
        if not (self.has_add_permission(request) or self.has_change_permission(request)):
            raise PermissionDenied
        pack = request.GET.get("pack", "")
        if not pack.isdigit():
            return JsonResponse({"number": None})
        question = request.GET.get("question", "")
        if question.isdigit():
            current = Question.objects.filter(pk=int(question), pack_id=int(pack)).first()
            if current is not None:
                return JsonResponse({"number": current.number})
        return JsonResponse({"number": Question.next_number(int(pack))})

    @admin.display(description="Name", ordering="name")
    def short_name(self, obj):
        return truncate(obj.name, 50)

    @admin.display(description="Category", ordering="pack__category__name")
    def category_badge(self, obj):
        return badge(obj.pack.category.name, "info")

    @admin.display(description="Pack", ordering="pack__name")
    def pack_badge(self, obj):
        return badge(obj.pack.name, "gray")

    @admin.display(description="Answers", ordering="_answers_count")
    def answers_count(self, obj):
        return badge(obj._answers_count, "info")

    def navigation_badge(self, request):
        return Question.objects.count()
