
from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application configuration loaded from environment variables / .env file."""

    app_name: str = "RiskShield API"
    app_env: str = Field(default="development", alias="APP_ENV")
    app_port: int = 8000
    api_prefix: str = "/api"
    frontend_url: str = Field(default="http://localhost:3000", alias="FRONTEND_URL")
    app_url: str = Field(default="http://localhost:3000", alias="APP_URL")
    forwarding_email_domain: str = "riskshield.ai"

    # Sessions
    session_cookie_name: str = "auth_token"
    session_ttl_hours: int = Field(default=8, alias="SESSION_TTL_HOURS")
    password_reset_ttl_minutes: int = 60
    invitation_ttl_days: int = 7

    # Document storage (local filesystem)
    upload_dir: str = Field(default="./uploads", alias="UPLOAD_DIR")
    max_upload_size_mb: int = Field(default=10, alias="MAX_UPLOAD_SIZE_MB")

    # OpenAI
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4.1-mini", alias="OPENAI_MODEL")
    openai_max_tokens: int = Field(default=2000, alias="OPENAI_MAX_TOKENS")
    openai_timeout: int = Field(default=60, alias="OPENAI_TIMEOUT")
    openai_vision_detail: str = Field(
        default="high", alias="OPENAI_VISION_DETAIL",
    )  # "low" | "high" | "auto"
    max_pdf_pages_for_vision: int = Field(default=3, alias="MAX_PDF_PAGES_FOR_VISION")
    vision_dpi: int = Field(default=150, alias="VISION_DPI")

    # Verification
    review_confidence_threshold: float = Field(
        default=0.70, alias="REVIEW_CONFIDENCE_THRESHOLD",
    )  # Send to manual review when extraction confidence is below this
    expiry_warning_days: int = 30

    # Outbound HTTP
    http_timeout: float = Field(default=30.0, alias="HTTP_TIMEOUT")
    http_max_attempts: int = Field(default=3, alias="HTTP_MAX_ATTEMPTS")

    # Procore
    procore_client_id: str = Field(default="", alias="PROCORE_CLIENT_ID")
    procore_client_secret: str = Field(default="", alias="PROCORE_CLIENT_SECRET")
    procore_api_base: str = Field(default="https://api.procore.com", alias="PROCORE_API_BASE")
    procore_login_base: str = Field(default="https://login.procore.com", alias="PROCORE_LOGIN_BASE")
    procore_page_size: int = 100

    # Microsoft 365
    microsoft_client_id: str = Field(default="", alias="MICROSOFT_CLIENT_ID")
    microsoft_client_secret: str = Field(default="", alias="MICROSOFT_CLIENT_SECRET")
    microsoft_login_base: str = "https://login.microsoftonline.com/common/oauth2/v2.0"
    microsoft_graph_base: str = "https://graph.microsoft.com"
    microsoft_scopes: str = "openid profile email Mail.Read Mail.ReadBasic offline_access"

    # Stripe
    stripe_secret_key: str = Field(default="", alias="STRIPE_SECRET_KEY")
    stripe_webhook_secret: str = Field(default="", alias="STRIPE_WEBHOOK_SECRET")
    stripe_price_starter: str = Field(default="", alias="STRIPE_PRICE_STARTER")
    stripe_price_professional: str = Field(default="", alias="STRIPE_PRICE_PROFESSIONAL")
    stripe_price_enterprise: str = Field(default="", alias="STRIPE_PRICE_ENTERPRISE")
    stripe_trial_days: int = 14

    # Database (Postgres via asyncpg in production, SQLite for local dev)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./riskshield_dev.db",
        alias="DATABASE_URL",
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "populate_by_name": True,
        "extra": "ignore",
    }

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def ai_enabled(self) -> bool:
        """AI extraction is available only when an OpenAI key is configured."""
        return bool(self.openai_api_key)

    @property
    def cookie_secure(self) -> bool:
        return self.app_env == "production"

    @property
    def procore_dev_mode(self) -> bool:
        return not self.procore_client_id

    @property
    def microsoft_dev_mode(self) -> bool:
        return not self.microsoft_client_id or self.microsoft_client_id.startswith("test")

    @property
    def stripe_simulated(self) -> bool:
        return not self.stripe_secret_key

    def stripe_price_for(self, tier: str) -> str:
        return {
            "starter": self.stripe_price_starter,
            "professional": self.stripe_price_professional,
            "enterprise": self.stripe_price_enterprise,
        }.get(tier, "")

settings = Settings()
