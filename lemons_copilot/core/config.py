from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    BUBBLE_API_BASE: str = "https://lemonslemons.co/version-test/api/1.1"
    BUBBLE_API_TOKEN: str = ""
    BUBBLE_SERVICE_TYPE: str = "service"
    # Explicit overrides skip slug probing entirely
    BUBBLE_PACKAGE_TYPE: str | None = None
    BUBBLE_USER_TYPE: str | None = None
    PACKAGE_SLUG_CANDIDATES: list[str] = ["package", "packages", "service_package", "servicepackage", "offer_package"]
    USER_SLUG_CANDIDATES: list[str] = ["user", "users", "profile"]
    SERVICE_PACKAGES_FIELD: str = "packages"
    PACKAGE_SERVICE_FIELD: str = "service"

    ALGOLIA_APP_ID: str | None = None
    ALGOLIA_SEARCH_KEY: str | None = None
    ALGOLIA_INDEX: str = "services"
    ALGOLIA_PRICE_ATTRIBUTE: str = "packages.price"
    ALGOLIA_DELIVERY_ATTRIBUTE: str = "packages.delivery_days"

    HTTP_TIMEOUT_SECONDS: float = 10.0

    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_TEMPERATURE: float = 0.2
    ASSISTANT_MAX_TOOL_ROUNDS: int = 4

    STORAGE_DIR: str = "./data/storage"
    HOST_ORIGIN: str = "https://lemonslemons.co"


settings = Settings()
