from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    MONGO_URL: str = "mongodb://127.0.0.1:27017"
    MONGO_DB_NAME: str = "db_name"
    MONGO_COLLECTION_NAME: str = "sessions"
    # applied to sessions stored without an explicit expiry
    SESSION_TTL_SECONDS: int = 1200
    SESSION_COOKIE_NAME: str = "mongo.sid"

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
