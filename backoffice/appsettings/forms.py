from decimal import Decimal, InvalidOperation

from django import forms

from .models import Setting

# (group, key) pairs whose value is a percentage
PERCENTAGE_SETTINGS = {("certificate", "percentage")}


class SettingAdminForm(forms.ModelForm):
    value = forms.CharField(widget=forms.Textarea(attrs={"rows": 4}), max_length=65535)

    class Meta:
        model = Setting
        fields = ("group", "name", "details", "key", "value", "is_visible")

    def clean(self):
        cleaned = super().clean()
        group, key, value = cleaned.get("group"), cleaned.get("key"), cleaned.get("value")
        if (group, key) in PERCENTAGE_SETTINGS and value is not None:
            try:
                number = Decimal(value.strip())
            except InvalidOperation:
                self.add_error("value", "Enter a number.")
            else:
                if not 0 <= number <= 100:
                    self.add_error("value", "Enter a value between 0 and 100.")
        return cleaned
