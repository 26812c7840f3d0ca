from django.apps import AppConfig


class CpdConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "cpd"
    verbose_name = "CPD points tracking"

    def ready(self):
        # import our signals so Django will register them
        import cpd.signals  # noqa: F401
