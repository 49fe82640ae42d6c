"""
LLM Provider Factory

Creates LLM provider instances from configuration.
"""

import logging
from typing import Literal

from sqlbridge.config import ConfigurationError, LLMSettings
from sqlbridge.llm.base import BaseLLMProvider
from sqlbridge.llm.google import GoogleProvider
from sqlbridge.llm.local import LocalProvider

logger = logging.getLogger(__name__)


class LLMProviderFactory:
    """Factory for creating LLM provider instances."""

    PROVIDERS = {
        "google": GoogleProvider,
        "local": LocalProvider,
    }

    @staticmethod
    def create_provider(
        provider_type: Literal["google", "local"],
        config: LLMSettings,
    ) -> BaseLLMProvider:
        """
        Create an LLM provider instance.

        Args:
            provider_type: Type of provider to create
            config: LLM configuration settings

        Returns:
            Configured provider instance

        Raises:
            ValueError: If provider type is unknown
            ConfigurationError: If required credentials are missing
        """
        if provider_type not in LLMProviderFactory.PROVIDERS:
            raise ValueError(
                f"Unknown provider type: {provider_type}. "
                f"Available providers: {list(LLMProviderFactory.PROVIDERS.keys())}"
            )

        logger.info(f"Creating {provider_type} provider", extra={"provider": provider_type})

        if provider_type == "google":
            return LLMProviderFactory._create_google(config)
        return LLMProviderFactory._create_local(config)

    @staticmethod
    def create_default_provider(config: LLMSettings) -> BaseLLMProvider:
        """Create the provider selected by ``config.provider``."""
        return LLMProviderFactory.create_provider(config.provider, config)

    @staticmethod
    def _create_google(config: LLMSettings) -> GoogleProvider:
        if not config.google_api_key:
            raise ConfigurationError("Google API key is required but not configured")

        return GoogleProvider(
            api_key=config.google_api_key,
            model=config.google_model,
            base_url=config.google_base_url,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout=config.timeout,
            max_retries=config.max_retries,
            retry_backoff_seconds=config.retry_backoff_seconds,
        )

    @staticmethod
    def _create_local(config: LLMSettings) -> LocalProvider:
        return LocalProvider(
            base_url=config.local_base_url,
            model=config.local_model,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout=config.timeout,
            max_retries=config.max_retries,
            retry_backoff_seconds=config.retry_backoff_seconds,
        )
