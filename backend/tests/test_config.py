import pytest
from pydantic import ValidationError

from app.core.config import Settings


def test_defaults():
    settings = Settings()
    assert settings.api_prefix == "/api"
    assert settings.schedule_requires_approval is False
    assert settings.instance_duplicate_policy == "skip"
    assert settings.instance_failure_policy == "best_effort"
    assert settings.max_generation_days == 366


def test_cors_origins_accept_comma_list_and_json():
    assert Settings(cors_origins="http://a.test, http://b.test").cors_origins == ["http://a.test", "http://b.test"]
    assert Settings(cors_origins='["http://a.test"]').cors_origins == ["http://a.test"]


def test_log_level_is_normalized():
    assert Settings(log_level=" debug ").log_level == "DEBUG"


def test_policies_are_validated():
    with pytest.raises(ValidationError):
        Settings(instance_duplicate_policy="sometimes")
    with pytest.raises(ValidationError):
        Settings(instance_failure_policy="retry")
