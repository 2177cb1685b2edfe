from datahub.core.config import Settings, parse_cors_origins
from datahub.core import database
from datahub.core.database import engine_options, engine_url
from datahub.services.portal02 import build_callback_url, normalize_portal02_base_url


def test_parse_cors_origins_csv():
    value = "http://localhost:5173, http://localhost:3000"
    assert parse_cors_origins(value) == [
        "http://localhost:5173",
        "http://localhost:3000",
    ]


def test_parse_cors_origins_json_list():
    value = '["http://localhost:5173", "https://maxhub.example.com"]'
    assert parse_cors_origins(value) == [
        "http://localhost:5173",
        "https://maxhub.example.com",
    ]


def test_parse_cors_origins_deduplicates():
    value = "http://localhost:5173,http://localhost:5173"
    assert parse_cors_origins(value) == ["http://localhost:5173"]


def test_settings_defaults_for_fulfillment_loops(monkeypatch):
    for key in ("QUEUE_BATCH_SIZE", "QUEUE_MAX_RETRIES", "SYNC_BATCH_SIZE", "OFFERS_CACHE_TTL_SECONDS"):
        monkeypatch.delenv(key, raising=False)
    settings = Settings(_env_file=None)
    assert settings.queue_batch_size == 5
    assert settings.queue_max_retries == 5
    assert settings.sync_batch_size == 20
    assert settings.offers_cache_ttl_seconds == 600
    assert settings.portal02_timeout_seconds == 15


def test_callback_url_prefers_backend_url():
    url = build_callback_url("https://api.maxhub.com/api/", "https://maxhub.com", "https://fallback.test/api")
    assert url == "https://api.maxhub.com/api/webhooks/portal02"


def test_callback_url_derives_from_frontend_url():
    url = build_callback_url(None, "https://maxhub.com/", "https://fallback.test/api")
    assert url == "https://maxhub.com/api/webhooks/portal02"


def test_callback_url_never_points_at_loopback():
    assert build_callback_url("http://localhost:5000/api", None, "https://fallback.test/api") == (
        "https://fallback.test/api/webhooks/portal02"
    )
    assert build_callback_url("http://127.0.0.1:5000/api", None, "https://fallback.test/api") == (
        "https://fallback.test/api/webhooks/portal02"
    )
    assert build_callback_url(None, None, "https://fallback.test/api") == "https://fallback.test/api/webhooks/portal02"


def test_normalize_portal02_base_url_adds_api_path_for_root_domain():
    assert normalize_portal02_base_url("https://www.portal-02.com") == "https://www.portal-02.com/api/v1"
    assert normalize_portal02_base_url("https://www.portal-02.com/api/v1/") == "https://www.portal-02.com/api/v1"
    assert normalize_portal02_base_url("") == "https://www.portal-02.com/api/v1"


def test_engine_url_selects_psycopg3_for_plain_postgres_urls():
    assert engine_url("postgresql://u:p@db:5432/datahub") == "postgresql+psycopg://u:p@db:5432/datahub"
    assert engine_url("postgresql+psycopg2://u:p@db/datahub") == "postgresql+psycopg2://u:p@db/datahub"
    assert engine_url("sqlite:///./datahub.db") == "sqlite:///./datahub.db"


def test_engine_options_per_backend():
    assert engine_options("sqlite://") == {"connect_args": {"check_same_thread": False}}
    options = engine_options("postgresql+psycopg://u:p@db/datahub")
    assert options["pool_size"] == database.settings.db_pool_size
    assert options["max_overflow"] == database.settings.db_max_overflow
    assert options["pool_recycle"] == database.settings.db_pool_recycle
    assert "connect_args" not in options
