import pytest

from calendar_events.exceptions import EntityNotFoundError
from calendar_events.models import Calendar
from calendar_events.services.entity_lookup_service import EntityLookupService
from users.models import User


@pytest.fixture
def entity_lookup_service():
    return EntityLookupService()


def test_get_model(entity_lookup_service):
    assert entity_lookup_service.get_model("calendar_events.Calendar") is Calendar
    assert entity_lookup_service.get_model(Calendar) is Calendar


@pytest.mark.parametrize(
    "entity_class", ["calendar_events.Nothing", "no_such_app.Model", "Calendar"]
)
def test_get_model_unknown_class(entity_lookup_service, entity_class):
    with pytest.raises(EntityNotFoundError, match="Unknown entity class"):
        entity_lookup_service.get_model(entity_class)


@pytest.mark.django_db
def test_get_entity(entity_lookup_service, calendar):
    assert entity_lookup_service.get_entity("calendar_events.Calendar", calendar.id) == calendar
    assert entity_lookup_service.get_entity(Calendar, str(calendar.id)) == calendar


@pytest.mark.django_db
@pytest.mark.parametrize("entity_id", [999999, "not-a-number"])
def test_get_entity_not_found(entity_lookup_service, entity_id):
    with pytest.raises(EntityNotFoundError, match="not found"):
        entity_lookup_service.get_entity("calendar_events.Calendar", entity_id)


@pytest.mark.django_db
@pytest.mark.parametrize("entity_class", ["users.User", "auth.Permission", "admin.LogEntry"])
def test_models_outside_the_allow_list_are_refused(entity_lookup_service, user, entity_class):
    with pytest.raises(EntityNotFoundError, match="Unknown entity class"):
        entity_lookup_service.get_entity(entity_class, user.pk)


def test_allowed_models_can_be_configured():
    entity_lookup_service = EntityLookupService(allowed_models=["Users.User"])

    assert entity_lookup_service.get_model("users.User") is User
    with pytest.raises(EntityNotFoundError):
        entity_lookup_service.get_model(Calendar)


def test_allowed_models_default_to_the_setting(settings):
    settings.CALENDAR_EVENTS_ACTIVITY_TARGET_MODELS = []

    with pytest.raises(EntityNotFoundError):
        EntityLookupService().get_model(Calendar)
