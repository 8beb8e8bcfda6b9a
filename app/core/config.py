from functools import lru_cache
from typing import Literal
import os
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["development", "production"]

def _env_file_for(app_env: EnvName) -> str:
    return ".env.development" if app_env == "development" else ".env.production"

class Settings(BaseSettings):

    # Core
    APP_ENV: EnvName = "development"
    APP_NAME: str = "MarketplaceCore"
    DEBUG: bool = False
    GIT_SHA: str = "unknown"

    # Mongo
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB: str = "marketplace"
    MONGO_TRANSACTIONS: bool = False  # needs a replica set / Atlas

    # Redis (optional: reco cache + per-product write lock)
    REDIS_URL: str = ""

    # External scoring service
    RECO_CONTENT_URL: str = ""   # POST {"filename": ...}
    RECO_COLLAB_URL: str = ""    # GET ?user_id= / ?product_id=
    RECO_TIMEOUT_S: float = 2.0
    RECO_TARGET_SIZE: int = 10

    # Cache / lock config
    reco_cache_ttl: int = 10 * 60              # 10 minutes
    reco_cache_prefix: str = "reco"            # redis key namespace
    reco_lock_ttl: int = 10                    # seconds; per-product write lock

    # Images (transaction photos)
    IMAGE_DIR: str = "./data/images"

    # CORS (CSV)
    ALLOWED_ORIGINS: str = ""

    # pydantic-settings config will be set dynamically in the factory below
    model_config = SettingsConfigDict(env_file=None, case_sensitive=True)

    @property
    def allowed_origins(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

@lru_cache
def get_settings() -> Settings:
    """
    Factory that chooses the right .env file based on APP_ENV.
    Cache makes it cheap to inject via FastAPI dependencies.
    """
    app_env: EnvName = os.getenv("APP_ENV", "development")  # earliest switch
    env_file = _env_file_for(app_env)
    return Settings(
                _env_file=env_file,  # load .env.development or .env.production
                _env_file_encoding="utf-8"
    )
