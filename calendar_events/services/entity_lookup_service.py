from collections.abc import Iterable

from django.apps import apps
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from calendar_events.exceptions import EntityNotFoundError


class EntityLookupService:
    """
    Resolves an entity from its class and id. The class is either a model or an
    ``"app_label.ModelName"`` string, and must be one of the allowed activity target models.
    """

    def __init__(self, allowed_models: Iterable[str] | None = None):
        if allowed_models is None:
            allowed_models = getattr(settings, "CALENDAR_EVENTS_ACTIVITY_TARGET_MODELS", [])
        self.allowed_models = {label.strip().lower() for label in allowed_models if label}

    def get_model(self, entity_class: str | type[models.Model]) -> type[models.Model]:
        if isinstance(entity_class, type) and issubclass(entity_class, models.Model):
            model = entity_class
        else:
            try:
                model = apps.get_model(str(entity_class))
            except (LookupError, ValueError) as e:
                raise EntityNotFoundError(str(entity_class)) from e

        if model._meta.label_lower not in self.allowed_models:
            raise EntityNotFoundError(model._meta.label)
        return model

    def get_entity(self, entity_class: str | type[models.Model], entity_id) -> models.Model:
        model = self.get_model(entity_class)
        try:
            return model._default_manager.get(pk=entity_id)
        except (model.DoesNotExist, ValueError, ValidationError) as e:
            raise EntityNotFoundError(model._meta.label, entity_id) from e
