import logging
import os
from typing import List

from pydantic import BaseModel, Field


class Settings(BaseModel):
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "crescevendas"
    secret_key: str = "supersecretkey"
    jwt_algorithm: str = "HS256"
    token_expire_days: int = Field(7, ge=1)
    bcrypt_rounds: int = Field(12, ge=4, le=31)
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    port: int = 4000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            database_url=os.getenv("DATABASE_URL", "mongodb://localhost:27017"),
            database_name=os.getenv("DATABASE_NAME", "crescevendas"),
            secret_key=os.getenv("SECRET_KEY", "supersecretkey"),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            token_expire_days=int(os.getenv("TOKEN_EXPIRE_DAYS", 7)),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", 12)),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            port=int(os.getenv("PORT", 4000)),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


def configure_logging(settings: Settings) -> None:
    """Configure the root logger once; later calls only adjust the level."""
    logging.basicConfig(format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    logging.getLogger().setLevel(settings.log_level.upper())
