"""Keyed string sources the binder resolves settings from."""

from .environment import ENVIRONMENT, EnvironmentProvider
from .secrets import SECRETS, SecretsProvider, default_secrets_directory

__all__ = [
    "ENVIRONMENT",
    "EnvironmentProvider",
    "SECRETS",
    "SecretsProvider",
    "default_secrets_directory",
]
