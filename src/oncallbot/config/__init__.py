"""
On-call bot configuration.

Provides:
- Pydantic-based settings (environment variables, .env files)
- Runtime credential lookup (env, credentials file, GCP Secret Manager)
"""

from oncallbot.config.secrets import (
    SecretBackend,
    SecretConfig,
    SecretResolver,
    load_runtime_secrets,
)
from oncallbot.config.settings import Settings, get_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # Secrets
    "SecretBackend",
    "SecretConfig",
    "SecretResolver",
    "load_runtime_secrets",
]
