from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    APP_NAME: str = "BRANCHFLOW"
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    DATABASE_URL: str = "sqlite+pysqlite:///./branchflow.db"
    METRICS_ENABLED: bool = True
    BRANCH_HEADER: str = "X-Branch-Id"
    DEVICE_HEADER: str = "X-Device-Guid"
    TRANSFERS_UNFILTERED_LIMIT: int = 10
    RELOCATION_MAX_ATTEMPTS: int = 5
    BRANCH_ALIASES: dict[str, str] = Field(
        default_factory=lambda: {
            "hidalgo": "Hidalgo",
            "maus": "Maus",
            "maus home": "Maus Home",
        }
    )


settings = Settings()
