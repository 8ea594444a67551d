"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class SecureLedgerConfig(BaseSettings):
    """Secure ledger service configuration"""

    # Deployment
    environment: str = "development"  # development, test, production

    # Database configuration
    database_url: str = "sqlite:///secure_ledger.db"  # memory://, sqlite:///path, postgresql://...

    # Key material (base64). aes_key is required; an absent RSA pair is
    # replaced by an ephemeral one outside production.
    aes_key: str = ""
    rsa_public_key: str = ""   # DER SubjectPublicKeyInfo, base64
    rsa_private_key: str = ""  # DER PKCS#8, base64
    rsa_padding: str = "pkcs1v15"  # pkcs1v15 or oaep

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    enable_encryption_endpoints: bool = False  # Development helpers only

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    class Config:
        env_prefix = "SECURE_LEDGER_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = SecureLedgerConfig()


def get_config() -> SecureLedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> SecureLedgerConfig:
    """Reload configuration from environment"""
    global config
    config = SecureLedgerConfig()
    return config
