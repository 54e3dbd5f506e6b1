from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    poupapig_env: str = "development"
    log_level: str = "INFO"

    supabase_url: str = ""
    supabase_service_role_key: str = ""

    evolution_api_url: str = ""
    evolution_api_key: str = ""
    evolution_instance: str = ""
    http_timeout_seconds: float = 15.0

    gcp_project_id: str = ""
    openai_api_key: str = ""
    openai_api_key_secret_name: str = "OPENAI_API_KEY"
    openai_model: str = "gpt-4o-mini"
    openai_temperature: float = 0.3
    openai_max_tokens: int = 500
    intent_min_confidence: float = 0.6

    redis_url: str = ""
    cache_namespace: str = "poupapig"

    timezone: str = "America/Sao_Paulo"
    transport_suffix: str = "@s.whatsapp.net"

    webhook_rate_limit_window_ms: int = 60_000
    webhook_rate_limit_max_requests: int = 30
    api_rate_limit_window_ms: int = 15 * 60_000
    api_rate_limit_max_requests: int = 100

    summary_cache_ttl_seconds: int = 24 * 60 * 60
    default_categories: list[str] = [
        "Alimentação",
        "Transporte",
        "Moradia",
        "Saúde",
        "Educação",
        "Lazer",
        "Compras",
        "Serviços",
        "Outros Gastos",
        "Salário",
        "Freelance",
        "Investimentos",
        "Vendas",
        "Outros Ganhos",
    ]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @field_validator("default_categories", mode="before")
    @classmethod
    def _split_categories(cls, value: object) -> list[str]:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if value is None:
            return []
        return list(value)

    @field_validator("evolution_api_url", mode="after")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


settings = Settings()
