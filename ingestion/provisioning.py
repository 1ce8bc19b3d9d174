"""
Destination table provisioning
"""

import logging

from core.config import ImportConfig
from core.exceptions import (
    ProvisioningError,
    ServerUnavailableError,
    SkyError,
    TableExistsError
)
from core.sky_client import SkyClient, SkyTable

logger = logging.getLogger(__name__)


async def provision_table(client: SkyClient, config: ImportConfig) -> SkyTable:
    """
    Make sure the destination table exists with the configured properties.

    An existing table is only replaced when overwrite is set. A freshly
    created table gets every property from config.properties, in order.

    Raises:
        ServerUnavailableError: If the server does not answer the ping
        TableExistsError: If the table exists and overwrite is not set
        ProvisioningError: If any table or property request fails
    """
    logger.info(f"Connecting to {config.host}:{config.port}.")

    if not await client.ping():
        raise ServerUnavailableError(
            "Server is not running.",
            context={"host": config.host, "port": config.port}
        )

    try:
        table = await client.get_table(config.table)

        if table is not None:
            if not config.overwrite:
                raise TableExistsError(
                    f"Table already exists: {config.table} (use --overwrite to replace it)",
                    context={"table_name": config.table}
                )
            await client.delete_table(table)

        table = await client.create_table(config.table)

        for spec in config.properties:
            await table.create_property(spec)

    except SkyError as e:
        raise ProvisioningError(
            f"Unable to provision table {config.table}: {e.message}",
            context={"table_name": config.table},
            original_exception=e
        )

    logger.info(f"Table {config.table} ready with {len(config.properties)} properties")
    return table
