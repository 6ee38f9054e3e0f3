from django.apps import AppConfig


class CertwatchConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "certwatch"
    verbose_name = "Certification Watch"

    def ready(self):
        """
        Validate configured visit windows on startup.

        A HOPE_VISIT_WINDOWS override with a start offset after its end offset
        raises InvalidWindowDefinition here instead of during a batch run.
        """
        from certwatch.products.hopevisits.constants import get_hope_visit_windows

        get_hope_visit_windows()
