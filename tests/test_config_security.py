from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.core.config import Settings


def test_default_jwt_secret_allowed_in_development() -> None:
    settings = Settings(_env_file=None, app_env="development", auth_jwt_secret="change-me")
    assert settings.auth_jwt_secret == "change-me"


def test_default_jwt_secret_rejected_in_production() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, app_env="production", auth_jwt_secret="change-me")


def test_placeholder_jwt_secret_prefix_rejected_in_production() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, app_env="prod", auth_jwt_secret="change-me-in-production")


def test_custom_jwt_secret_allowed_in_production() -> None:
    settings = Settings(_env_file=None, app_env="production", auth_jwt_secret="super-secure-value")
    assert settings.auth_jwt_secret == "super-secure-value"


def test_empty_audience_disables_audience_check() -> None:
    settings = Settings(_env_file=None, auth_jwt_audience="  ")
    assert settings.auth_jwt_audience is None


def test_email_notifications_require_api_key() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, email_notifications_enabled=True, resend_api_key=None)


def test_lesson_counts_default_to_school_products() -> None:
    settings = Settings(_env_file=None)
    assert settings.ten_class_card_lessons == 10
    assert settings.half_year_lessons == 18
    assert settings.max_teachers_per_student == 2
