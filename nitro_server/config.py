"""Configuration persistence for the Nitro server."""

import json
import os
from pathlib import Path
from typing import Any, Callable, Optional
import logging

from pydantic import ValidationError

from .models import ApiConfig, BotConfig, MercadoPagoSettings, NitroSettings

logger = logging.getLogger(__name__)

API_CONFIG_KEY = "api-config"
BOT_CONFIG_KEY = "bot-config"


class LocalStorage:
    """Key-value store keeping one JSON document per key."""

    def __init__(self, directory: Optional[str] = None) -> None:
        """
        Initialize the storage.

        Args:
            directory: Where documents are kept. Defaults to NITRO_CONFIG_DIR or ~/.nitro_server
        """
        if directory is None:
            directory = os.environ.get("NITRO_CONFIG_DIR") or str(Path.home() / ".nitro_server")
        self.directory = directory

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def get_item(self, key: str) -> Optional[Any]:
        """Return the stored document, or None if it is missing or corrupted."""
        path = self._path(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read {path}: {e}")
            return None

    def set_item(self, key: str, value: Any) -> None:
        """Overwrite the document stored under key."""
        os.makedirs(self.directory, exist_ok=True)
        path = self._path(key)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(value, f, indent=2, ensure_ascii=False)
        # Holds API secrets
        os.chmod(path, 0o600)


class ConfigStore:
    """Holds the API connection configuration and writes it through to storage."""

    def __init__(self, storage: Optional[LocalStorage] = None) -> None:
        """
        Initialize the configuration store.

        Args:
            storage: Backing storage. Defaults to LocalStorage()
        """
        self.storage = storage if storage is not None else LocalStorage()
        self._subscribers: list[Callable[[ApiConfig], None]] = []
        # Values from the environment win over the saved ones but are never written back
        self._env_nitro: dict[str, str] = {}
        self._load_from_env()

        self.saved: ApiConfig = self.load()
        self.config: ApiConfig = self._with_env(self.saved)

    def load(self) -> ApiConfig:
        """Read the persisted configuration, falling back to defaults."""
        data = self.storage.get_item(API_CONFIG_KEY)
        if data is None:
            return ApiConfig()
        try:
            return ApiConfig.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Stored API config is invalid, using defaults: {e}")
            return ApiConfig()

    def _with_env(self, config: ApiConfig) -> ApiConfig:
        if not self._env_nitro:
            return config
        nitro = config.nitro.model_copy(update=self._env_nitro)
        return config.model_copy(update={"nitro": nitro})

    def update(self, partial: dict[str, Any]) -> ApiConfig:
        """
        Merge top-level fields into the saved configuration and persist it.

        Nested groups given in partial replace the stored group as a whole.
        Use update_nitro / update_mercadopago to change a single field.

        Args:
            partial: Top-level fields ("nitro", "mercadopago") to replace

        Returns:
            The new effective configuration, environment overrides included
        """
        merged = self.saved.model_dump()
        merged.update(partial)
        self.saved = ApiConfig.model_validate(merged)
        self.storage.set_item(API_CONFIG_KEY, self.saved.model_dump())
        self.config = self._with_env(self.saved)
        logger.info("API configuration saved")

        for callback in list(self._subscribers):
            callback(self.config)
        return self.config

    def update_nitro(self, endpoint: Optional[str] = None, api_token: Optional[str] = None) -> ApiConfig:
        """Change Nitro connection fields, keeping the ones not given."""
        changes = {}
        if endpoint is not None:
            changes["endpoint"] = endpoint
        if api_token is not None:
            changes["api_token"] = api_token
        overridden = sorted(set(changes) & set(self._env_nitro))
        if overridden:
            logger.warning(f"Saved {', '.join(overridden)}, but the environment value stays in effect")
        nitro = self.saved.nitro.model_copy(update=changes)
        return self.update({"nitro": nitro.model_dump()})

    def update_mercadopago(
        self, access_token: Optional[str] = None, public_key: Optional[str] = None
    ) -> ApiConfig:
        """Change Mercado Pago credentials, keeping the ones not given."""
        current = self.saved.mercadopago or MercadoPagoSettings()
        changes = {}
        if access_token is not None:
            changes["access_token"] = access_token
        if public_key is not None:
            changes["public_key"] = public_key
        mercadopago = current.model_copy(update=changes)
        return self.update({"mercadopago": mercadopago.model_dump()})

    def is_configured(self) -> bool:
        """Check whether an API token is set."""
        return bool(self.config.nitro.api_token)

    @property
    def nitro(self) -> NitroSettings:
        """Current Nitro connection settings."""
        return self.config.nitro

    def subscribe(self, callback: Callable[[ApiConfig], None]) -> Callable[[], None]:
        """
        Register a callback run after every update.

        Returns:
            A function that removes the callback
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _load_from_env(self) -> None:
        """
        Read connection overrides from environment variables.

        They are kept in memory only and layered over the saved settings.

        - NITRO_ENDPOINT: base URL of the API
        - NITRO_API_TOKEN: API token
        """
        endpoint = os.environ.get("NITRO_ENDPOINT")
        api_token = os.environ.get("NITRO_API_TOKEN")

        if endpoint or api_token:
            logger.info("Loaded Nitro settings from environment")
            if endpoint:
                self._env_nitro["endpoint"] = endpoint
            if api_token:
                self._env_nitro["api_token"] = api_token
        else:
            logger.debug("No Nitro settings found in environment variables")


class BotConfigStore:
    """Persists the bot template settings."""

    def __init__(self, storage: Optional[LocalStorage] = None) -> None:
        self.storage = storage if storage is not None else LocalStorage()
        self.config: BotConfig = self.load()

    def load(self) -> BotConfig:
        """Read the saved bot settings, falling back to defaults."""
        data = self.storage.get_item(BOT_CONFIG_KEY)
        if data is None:
            return BotConfig()
        try:
            return BotConfig.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Stored bot config is invalid, using defaults: {e}")
            return BotConfig()

    def save(self, config: BotConfig) -> None:
        """Overwrite the saved bot settings."""
        self.config = config
        self.storage.set_item(BOT_CONFIG_KEY, config.model_dump())
        logger.info("Bot configuration saved")
