from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict
import os

# Load .env automatically
load_dotenv()


DEV_JWT_SECRET = "dev-secret-change-me"


class Settings(BaseModel):
    model_config = ConfigDict(validate_default=True)

    environment: str = os.getenv("ENVIRONMENT", "development")
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./expenses.db")
    sql_echo: bool = os.getenv("SQL_ECHO", "false")

    jwt_secret: str = os.getenv("JWT_SECRET", DEV_JWT_SECRET)
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    jwt_expire_days: int = os.getenv("JWT_EXPIRE_DAYS", "7")

    cors_origins: str = os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
    )

    rate_limit_enabled: bool = os.getenv("RATE_LIMIT_ENABLED", "true")
    rate_limit_max_requests: int = os.getenv("RATE_LIMIT_MAX_REQUESTS", "100")
    rate_limit_window_seconds: int = os.getenv("RATE_LIMIT_WINDOW_SECONDS", "900")

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


# Global settings instance
settings = Settings()
