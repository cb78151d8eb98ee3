"""
Storefront config: load from env.

Load from env: load_postgres_config(), load_storage_config(), load_intake_config().
"""
from storefront.config.intake import IntakeConfig, load_intake_config
from storefront.config.postgres import PostgresConfig, load_postgres_config
from storefront.config.storage import StorageConfig, load_storage_config

__all__ = [
    "PostgresConfig",
    "load_postgres_config",
    "StorageConfig",
    "load_storage_config",
    "IntakeConfig",
    "load_intake_config",
]
