"""Configuration loading helpers for classifieds-watcher."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from uuid import UUID

import yaml

from .models import GlobalConfig, Subscription

GLOBAL_CONFIG_FILENAME = "global_config.yaml"
SUBSCRIPTIONS_FILENAME = "subscriptions.yaml"


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get("CLASSIFIEDS_WATCHER_HOME")
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def global_config_path(self) -> Path:
        return self.data_dir / GLOBAL_CONFIG_FILENAME

    def subscriptions_path(self) -> Path:
        return self.data_dir / SUBSCRIPTIONS_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._global_cache: GlobalConfig | None = None

    # ------------------------------------------------------------------
    # Global configuration helpers
    # ------------------------------------------------------------------
    def load_global_config(self) -> GlobalConfig:
        if self._global_cache is not None:
            return self._global_cache
        path = self.locator.global_config_path()
        if path.exists():
            payload = _read_file(path)
            global_cfg = GlobalConfig.model_validate(payload)
        else:
            global_cfg = GlobalConfig()
            self.save_global_config(global_cfg)
        self._global_cache = global_cfg
        return global_cfg

    def save_global_config(self, config: GlobalConfig) -> None:
        path = self.locator.global_config_path()
        payload = config.model_dump(mode="json")
        _write_file(path, payload)
        self._global_cache = config

    def data_dir(self) -> Path:
        return self.load_global_config().resolved_data_dir(self.locator.project_root)

    # ------------------------------------------------------------------
    # Subscription helpers
    # ------------------------------------------------------------------
    def list_subscriptions(self) -> list[Subscription]:
        path = self.locator.subscriptions_path()
        if not path.exists():
            return []
        payload = _read_file(path)
        entries = payload.get("subscriptions") or []
        if not isinstance(entries, list):
            raise ValueError(f"'subscriptions' must be a list: {path}")
        subscriptions = [Subscription.model_validate(entry) for entry in entries]
        seen: set[UUID] = set()
        for subscription in subscriptions:
            if subscription.id in seen:
                raise ValueError(f"Duplicate subscription id: {subscription.id}")
            seen.add(subscription.id)
        return subscriptions

    def load_subscription(self, subscription_id: UUID | str) -> Subscription:
        wanted = UUID(str(subscription_id))
        for subscription in self.list_subscriptions():
            if subscription.id == wanted:
                return subscription
        raise KeyError(f"Subscription not found: {subscription_id}")

    def save_subscriptions(self, subscriptions: list[Subscription]) -> Path:
        path = self.locator.subscriptions_path()
        payload = {
            "subscriptions": [item.model_dump(mode="json") for item in subscriptions]
        }
        _write_file(path, payload)
        return path


__all__ = ["ConfigLocator", "ConfigRepository"]
