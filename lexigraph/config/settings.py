from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "lexigraph"
    db_username: str = "lexigraph"
    db_password: str = "secret"
    db_connect_timeout_seconds: int = 10
    db_statement_timeout_seconds: int = 30

    object_store_endpoint: str = "http://localhost:9000"
    object_store_access_key: str = ""
    object_store_secret_key: str = ""
    object_store_region: str = "us-east-1"
    object_store_bucket: str = "documents"
    object_store_timeout_seconds: int = 60

    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_username: str = "neo4j"
    neo4j_password: str = "secret"
    neo4j_database: str = "neo4j"
    neo4j_timeout_seconds: int = 30

    redis_url: str = "redis://localhost:6379/0"
    redis_timeout_seconds: int = 5
    session_cache_ttl_seconds: int = 24 * 60 * 60
    centroid_cache_ttl_seconds: int = 24 * 60 * 60

    upload_max_size_mb: int = 100
    chunk_size_mb: int = 10
    single_upload_max_size_mb: int = 50
    allowed_extension: str = ".pdf"
    abort_grace_seconds: int = 300
    session_store_shards: int = 16

    pdf_engine: str = "pdfplumber"
    cooccurrence_window_size: int = 5
    graph_threshold: int = 2
    default_graph_type: str = "co_occurrence"

    processing_workers: int = 4
    processing_queue_size: int = 64
    submit_timeout_seconds: int = 5
    job_poll_interval_seconds: int = 5
