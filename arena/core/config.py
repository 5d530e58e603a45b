from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATA_DIR: str = "arena/data"
    LOG_LEVEL: str = "INFO"
    DEFAULT_SEEDING: str = "sequential" # "sequential" or "standard"
    MIN_DISPUTE_EVIDENCE: int = 1
    ADMIN_ROLE: str = "admin"
    STORE_LOCK_TIMEOUT: float = 10 # seconds to wait for another process holding a data file

    class Config:
        env_file = ".env"
        env_prefix = "ARENA_"

settings = Settings()
