# remodel/config.py
import os  # lets us read environment variables (from the OS)
from functools import (
    lru_cache,  # we use it to reuse one Settings object
)

from dotenv import load_dotenv  # loads variables from a local .env file
from pydantic import BaseModel, field_validator

load_dotenv()  # read .env and put those key=value pairs into environment variables

MIN_BCRYPT_ROUNDS = 10


class Settings(BaseModel):  # typed container for config values
    # storage connection string; there is no default on purpose
    # change effect: point to a different DB (e.g., Postgres) or SQLite file
    database_url: str = os.getenv("DATABASE_URL", "")

    # signs session tokens issued by the external session component
    secret_key: str = os.getenv("SECRET_KEY", "dev-secret-change")

    # bootstrap admin, created on startup when all three credentials are set
    admin_name: str = os.getenv("ADMIN_NAME", "Administrator")
    admin_username: str = os.getenv("ADMIN_USERNAME", "")
    admin_email: str = os.getenv("ADMIN_EMAIL", "")
    admin_password: str = os.getenv("ADMIN_PASSWORD", "")

    # bcrypt cost factor; 12 is roughly 100-250ms per verification
    bcrypt_rounds: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # all JSON endpoints live under this base path
    api_prefix: str = os.getenv("API_PREFIX", "/api")

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @field_validator("bcrypt_rounds")
    @classmethod
    def _rounds_floor(cls, v: int) -> int:
        if v < MIN_BCRYPT_ROUNDS:
            raise ValueError(f"BCRYPT_ROUNDS must be >= {MIN_BCRYPT_ROUNDS}")
        return v

    @property
    def has_bootstrap_admin(self) -> bool:
        return bool(self.admin_username and self.admin_email and self.admin_password)


@lru_cache  # make sure Settings() is created once and reused
def get_settings() -> Settings:
    return Settings()  # build from env (already loaded by load_dotenv())
