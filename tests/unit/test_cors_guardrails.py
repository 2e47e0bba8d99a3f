from __future__ import annotations

import pytest

from apps.api_gateway.main import CORS_ALLOW_HEADERS, _cors_params, check_startup_config


def test_prod_rejects_wildcard_origin(settings) -> None:
    settings.app_env = "prod"
    settings.cors_allowed_origins = "*"
    settings.cors_allow_credentials = True

    with pytest.raises(RuntimeError):
        _cors_params()


def test_wildcard_disables_credentials(settings) -> None:
    settings.app_env = "dev"
    settings.cors_allowed_origins = "*"
    settings.cors_allow_credentials = True

    origins, allow_credentials = _cors_params()
    assert origins == ["*"]
    assert allow_credentials is False


def test_csv_origins_keep_credentials(settings) -> None:
    settings.app_env = "prod"
    settings.cors_allowed_origins = "https://clinic.example.com,https://admin.example.com"
    settings.cors_allow_credentials = True

    origins, allow_credentials = _cors_params()
    assert origins == ["https://clinic.example.com", "https://admin.example.com"]
    assert allow_credentials is True


def test_allowed_headers_cover_browser_client() -> None:
    assert set(CORS_ALLOW_HEADERS) == {"authorization", "x-client-info", "apikey", "content-type"}


def test_startup_rejects_unknown_summary_mode(settings) -> None:
    settings.summary_mode = "bullet_points"
    with pytest.raises(RuntimeError):
        check_startup_config()


def test_startup_rejects_identity_none_in_prod(settings) -> None:
    settings.app_env = "prod"
    settings.identity_provider = "none"
    with pytest.raises(RuntimeError):
        check_startup_config()


def test_startup_requires_openai_key_for_openai_providers(settings) -> None:
    settings.stt_provider = "openai"
    settings.openai_api_key = None
    with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
        check_startup_config()


@pytest.mark.parametrize("field", ["identity_provider", "storage_mode", "record_store"])
def test_startup_requires_supabase_url_for_supabase_parts(settings, field) -> None:
    settings.app_env = "dev"
    settings.supabase_url = None
    settings.supabase_service_role_key = "service-key"
    setattr(settings, field, "supabase")
    with pytest.raises(RuntimeError, match="SUPABASE_URL"):
        check_startup_config()


def test_startup_requires_service_key_for_supabase_storage(settings) -> None:
    settings.app_env = "dev"
    settings.storage_mode = "supabase"
    settings.supabase_url = "https://proj.supabase.co"
    settings.supabase_service_role_key = None
    with pytest.raises(RuntimeError, match="SUPABASE_SERVICE_ROLE_KEY"):
        check_startup_config()


def test_startup_accepts_local_dev_setup(settings) -> None:
    settings.app_env = "dev"
    settings.identity_provider = "none"
    settings.storage_mode = "local_fs"
    settings.record_store = "sql"
    settings.stt_provider = "mock"
    settings.llm_provider = "mock"
    settings.summary_mode = "styles"
    check_startup_config()
