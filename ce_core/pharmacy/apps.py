from django.apps import AppConfig


class PharmacyConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "ce_core.pharmacy"
    verbose_name = "Pharmacy"
