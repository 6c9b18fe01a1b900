from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings
import os
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    # PostgreSQL Configuration
    postgres_user: str = Field(default="admin", env="POSTGRES_USER")
    postgres_password: str = Field(default="admin", env="POSTGRES_PASSWORD")
    postgres_db: str = Field(default="swipematch", env="POSTGRES_DB")
    postgres_host: str = Field(default="db", env="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, env="POSTGRES_PORT")

    # Application Configuration
    app_env: str = Field(default="dev", env="APP_ENV")
    api_port: int = Field(default=8080, env="API_PORT")
    jwt_secret: str = Field(
        default="change-me-in-production-use-a-secure-random-string",
        env="JWT_SECRET"
    )
    access_token_expires: int = Field(default=604800, env="ACCESS_TOKEN_EXPIRES")  # 7 days

    # Redis (identity cache + hub relay)
    redis_url: str = Field(default="redis://redis:6379/0", env="REDIS_URL")
    redis_pool_size: int = Field(default=20, env="REDIS_POOL_SIZE")
    identity_cache_ttl: int = Field(default=300, env="IDENTITY_CACHE_TTL")  # 5 minutes

    # Cross-process hub fan-out over Redis pub/sub (off for single-process deployments)
    hub_relay_enabled: bool = Field(default=False, env="HUB_RELAY_ENABLED")
    hub_relay_channel: str = Field(default="swipematch:hub", env="HUB_RELAY_CHANNEL")

    # WebSocket session tuning
    ws_auth_timeout: float = Field(default=10.0, env="WS_AUTH_TIMEOUT")
    ws_read_timeout: float = Field(default=60.0, env="WS_READ_TIMEOUT")
    ws_ping_interval: float = Field(default=54.0, env="WS_PING_INTERVAL")  # must stay below ws_read_timeout
    ws_write_timeout: float = Field(default=10.0, env="WS_WRITE_TIMEOUT")
    ws_max_message_size: int = Field(default=4096, env="WS_MAX_MESSAGE_SIZE")
    ws_send_queue_size: int = Field(default=256, env="WS_SEND_QUEUE_SIZE")
    ws_coalesce_frames: bool = Field(default=True, env="WS_COALESCE_FRAMES")

    @property
    def database_url(self) -> str:
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    # CORS - allow frontend origins (filter out None values)
    allowed_origins: List[str] = [
        origin for origin in [
            "http://localhost:3000",
            "http://localhost:19006",  # Expo web
            "http://localhost:8081",   # Expo Metro
            os.getenv("FRONTEND_URL")
        ] if origin is not None
    ]

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
