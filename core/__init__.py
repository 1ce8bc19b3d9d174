"""
Core utilities and configuration for the GitHub Archive importer.

This package provides foundational components used throughout the import pipeline:

Modules:
    config: Settings from the environment and the resolved ImportConfig
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration
    sky_client: Async client for the Sky event database

Usage:
    from core.config import ImportConfig, settings
    from core.exceptions import FetchError, ProvisioningError
    from core.logging import setup_logging
    from core.sky_client import SkyClient

Example:
    setup_logging(verbose=True)

    config = ImportConfig.from_settings(table="gharchive", overwrite=True)
    async with SkyClient(config.host, config.port) as client:
        if await client.ping():
            table = await client.get_table(config.table)
"""

__all__ = [
    "settings",
    "ImportConfig",
    "PropertySpec",
    "setup_logging",
    "SkyClient",
    "SkyTable",
    "EventStream",
    # Exceptions
    "ImporterException",
    "UsageError",
    "InvalidRangeError",
    "SkyError",
    "ProvisioningError",
    "ServerUnavailableError",
    "TableExistsError",
    "ExtractionError",
    "FetchError",
    "DecompressionError",
    "DecodeError",
    "DeliveryError",
]
