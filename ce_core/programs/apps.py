from django.apps import AppConfig


class ProgramsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "ce_core.programs"
    verbose_name = "HIV programs (HTS, ART, PEP, PrEP)"
