from django.apps import AppConfig


class LabConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "ce_core.lab"
    verbose_name = "Laboratory"
