from collections.abc import Callable

from cuid2 import cuid_wrapper
from model_bakery import baker

from users.models import User


cuid_generator: Callable[[], str] = cuid_wrapper()


DEFAULT_TEST_USER_PASSWORD = "123456"  # noqa: S105


class UserFactory:
    def create_user(self, is_seed_data=False, **kwargs) -> User:
        try:
            return User.objects.get(email=kwargs.get("email", ""))
        except User.DoesNotExist:
            pass

        user = baker.prepare(
            User,
            email=kwargs.get("email", f"user{cuid_generator()}@example.com"),
            first_name=kwargs.get("first_name", ""),
            last_name=kwargs.get("last_name", ""),
            is_superuser=kwargs.get("is_superuser", False),
            is_staff=kwargs.get("is_staff", False),
            is_active=True,
        )
        user.set_password(kwargs.get("password", DEFAULT_TEST_USER_PASSWORD))

        # Add seed data flag to meta field
        if is_seed_data:
            user.meta = {"is_seed_data": True}

        user.save()
        return user
