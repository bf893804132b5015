from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    # App
    app_name: str = "CRM Record ACL"
    debug: bool = False

    # Engine configuration file (YAML); built-in defaults when unset
    config_path: Optional[str] = None

    # Overrides crm.base_url from the YAML file
    crm_base_url: Optional[str] = None

    # Token verification; claims are trusted as issued when no key is set
    token_secret_key: Optional[str] = None
    token_algorithm: str = "HS256"

    # Overrides logging.level from the YAML file
    log_level: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="ACL_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
