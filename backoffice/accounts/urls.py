from django.urls import path

from . import views

app_name = "accounts"

urlpatterns = [
    path("verify/<uidb64>/<token>/", views.verify_email, name="verify-email"),
]
