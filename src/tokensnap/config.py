from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    db_host: str = "localhost"
    db_port: int = 54377
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_name: str = "tokensnap"
    hypersync_bearer_token: str = ""
    hypersync_testnet_url: str = "https://monad-testnet.hypersync.xyz"
    hypersync_mainnet_url: str = "https://monad.hypersync.xyz"
    requests_per_second: float = 10.0
    request_timeout: float = 30.0  # per page query, seconds
    fetch_timeout: Optional[float] = None  # whole replay, seconds
    max_iterations: Optional[int] = None
    cache_ttl_seconds: int = 3600
    admission_limit: int = 1
    admission_retry_after: int = 30
    debug: bool = True

    @property
    def database_url(self) -> str:
        return f"postgresql+asyncpg://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    def hypersync_url(self, network: str) -> str:
        if network == "mainnet":
            return self.hypersync_mainnet_url
        return self.hypersync_testnet_url

    class Config:
        env_file = ".env"


settings = Settings()
