"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import FetcherSettings, GlobalConfig, Subscription

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "FetcherSettings",
    "GlobalConfig",
    "Subscription",
]
