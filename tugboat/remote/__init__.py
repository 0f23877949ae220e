"""Remote hosting providers."""

from typing import Dict

from ..config import Config
from .base import RemoteProvider
from .gitea import GiteaProvider
from .github import GitHubProvider
from .models import RemoteRepository

PROVIDER_CLASSES = {
    "gitea": GiteaProvider,
    "github": GitHubProvider,
}


def build_remote_clients(config: Config) -> Dict[str, RemoteProvider]:
    """Instantiate one client per configured provider, keyed by provider name."""
    return {
        name: PROVIDER_CLASSES[provider.type](provider.api_url, provider.token)
        for name, provider in config.providers.items()
    }


__all__ = [
    'RemoteProvider',
    'RemoteRepository',
    'GiteaProvider',
    'GitHubProvider',
    'build_remote_clients',
]
