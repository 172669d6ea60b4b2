"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class LedgerConfig(BaseSettings):
    """Pocket ledger configuration"""
    
    # Storage configuration
    storage_backend: str = "json"  # memory, json or sqlite
    storage_path: str = "pocket_ledger.json"  # File path for json/sqlite backends
    storage_key: str = "banking_accounts"  # Key the account table is stored under
    sqlite_timeout: float = 5.0
    recover_corrupt_store: bool = False  # Treat an unreadable store as empty
    
    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090
    api_cors_origins: str = "*"  # Comma separated
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stderr
    
    # Business rules configuration
    welcome_bonus: str = "10000.00"  # Opening balance for new accounts
    max_amount: str = "10000000.00"  # Largest single deposit, withdrawal or transfer
    currency_symbol: str = "₹"
    seed_demo_accounts: bool = False
    
    class Config:
        env_prefix = "POCKET_LEDGER_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = LedgerConfig()


def get_config() -> LedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LedgerConfig:
    """Reload configuration from environment"""
    global config
    config = LedgerConfig()
    return config
