from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # OpenRouter
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    default_model: str = "google/gemini-2.5-flash"
    openrouter_model: str = ""
    llm_max_tokens: int = 8192
    web_search_max_results: int = 10

    # Network
    request_timeout_seconds: float = 20.0
    provider_timeout_seconds: float = 30.0
    pipeline_timeout_seconds: float = 240.0
    http_user_agent: str = "groundwork/0.1 (+https://example.local)"

    # Per-provider result limits (0 disables a provider)
    pubmed_limit: int = 5
    preprint_archive_limit: int = 5
    preprint_feed_limit: int = 50
    patents_limit: int = 5
    web_search_limit: int = 5
    gene_database_limit: int = 5
    grounded_web_limit: int = 10

    # Stage controls
    excavation_max_links_per_page: int = 15
    enrichment_min_snippet_chars: int = 150
    relevance_filter_batch_size: int = 50
    relevance_filter_max_selected: int = 10
    validation_batch_size: int = 20

    # Quality gate
    reliability_threshold: float = 0.2
    max_sources: int = 60

    # Query preprocessing
    preprocess_query: bool = False

    # App
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_to_file: bool = False
    log_dir: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]


settings = Settings()
