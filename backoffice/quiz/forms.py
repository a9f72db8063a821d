from django import forms
from django.contrib.auth import get_user_model

from accounts.roles import is_super_admin

from .models import Difficulty, Pack, Question, QuestionAnswer

User = get_user_model()


TINYMCE_JS = "https://cdn.jsdelivr.net/npm/tinymce@6.8.3/tinymce.min.js"


class RichTextarea(forms.Textarea):
    """Textarea turned into a TinyMCE editor by quiz/js/rich_text.js."""

    class Media:
        js = (TINYMCE_JS, "quiz/js/rich_text.js")

    def __init__(self, attrs=None):
        attrs = {"class": "rich-text", **(attrs or {})}
        super().__init__(attrs)


class DifficultyAdminForm(forms.ModelForm):
    class Meta:
        model = Difficulty
        fields = ("name", "level", "color")
        widgets = {
            'color': forms.TextInput(attrs={'type': 'color'}),
        }


class OwnerChoiceField(forms.ModelChoiceField):
    def label_from_instance(self, obj):
        return obj.email


class PackAdminForm(forms.ModelForm):
    user = OwnerChoiceField(queryset=User.objects.order_by("email"), label="Owner")

    class Meta:
        model = Pack
        fields = ("user", "category", "difficulty", "name", "description", "status")
        widgets = {
            "description": forms.Textarea(attrs={"rows": 5}),
        }

    # Set per request by the admin
    current_user = None

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        user = self.current_user
        if user is None:
            return
        if not self.instance.pk:
            self.initial.setdefault("user", user.pk)
        # Only super-admins hand packs to someone else
        self.fields["user"].disabled = not is_super_admin(user)


class QuestionAdminForm(forms.ModelForm):
    class Meta:
        model = Question
        fields = ("pack", "name", "number", "is_free", "description")
        widgets = {
            "name": forms.Textarea(attrs={"rows": 2, "placeholder": "Enter question name"}),
            "description": RichTextarea(attrs={"rows": 10}),
        }

    def clean(self):
        cleaned = super().clean()
        pack, number = cleaned.get("pack"), cleaned.get("number")
        if pack and number:
            duplicates = Question.objects.filter(pack=pack, number=number)
            if self.instance.pk:
                duplicates = duplicates.exclude(pk=self.instance.pk)
            if duplicates.exists():
                self.add_error(
                    "number",
                    f"Question # {number} has already exists in this pack. "
                    "Try to change number or select other pack.",
                )
        return cleaned


class QuestionAnswerForm(forms.ModelForm):
    class Meta:
        model = QuestionAnswer
        fields = ("description", "is_correct", "explanation")
        widgets = {
            "description": RichTextarea(attrs={"rows": 3}),
            "explanation": RichTextarea(attrs={"rows": 3}),
        }

    def clean(self):
        cleaned = super().clean()
        if cleaned.get("is_correct"):
            if not (cleaned.get("explanation") or "").strip():
                self.add_error("explanation", "An explanation is required for a correct answer.")
        else:
            # Only correct answers carry an explanation
            cleaned["explanation"] = ""
        return cleaned


class QuestionAnswerFormSet(forms.BaseInlineFormSet):
    def clean(self):
        super().clean()
        if any(self.errors):
            return
        kept = [
            form for form in self.forms
            if form.cleaned_data and not form.cleaned_data.get("DELETE", False)
        ]
        if not any(form.cleaned_data.get("is_correct") for form in kept):
            raise forms.ValidationError("At least one answer must be correct!")
