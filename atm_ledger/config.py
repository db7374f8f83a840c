"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class AtmLedgerConfig(BaseSettings):
    """ATM ledger configuration"""

    model_config = SettingsConfigDict(
        env_prefix="ATM_LEDGER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Snapshot configuration
    data_file: str = "accounts.json"

    # Ledger rules
    currency: str = "USD"
    account_number_length: int = 10
    max_id_attempts: int = 100
    salt_bytes: int = 16  # Never below 16

    # Shell configuration
    min_pin_length: int = 3
    mini_statement_size: int = 10

    # Demo account created on an empty ledger
    seed_demo_account: bool = True
    demo_holder_name: str = "Demo User"
    demo_initial_deposit: str = "5000.00"
    demo_pin: str = "1234"

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text


# Global configuration instance
config = AtmLedgerConfig()


def get_config() -> AtmLedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> AtmLedgerConfig:
    """Reload configuration from environment"""
    global config
    config = AtmLedgerConfig()
    return config
