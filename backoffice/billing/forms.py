from django import forms


class RefundForm(forms.Form):
    refund_reason = forms.CharField(
        max_length=255, widget=forms.Textarea(attrs={"rows": 3}), label="Refund reason"
    )


class SubscriptionForm(forms.Form):
    product_id = forms.CharField(widget=forms.HiddenInput)
    name = forms.CharField(max_length=50)
    description = forms.CharField(max_length=255, required=False, widget=forms.Textarea(attrs={"rows": 3}))
    price_id = forms.CharField(widget=forms.HiddenInput)
    unit_amount = forms.DecimalField(min_value=0, decimal_places=2, label="Unit amount ($)")

    product_fields = ("product_id", "name", "description")
    price_fields = ("price_id", "unit_amount")

    def product_section(self):
        return [self[name] for name in self.product_fields]

    def price_section(self):
        return [self[name] for name in self.price_fields]
