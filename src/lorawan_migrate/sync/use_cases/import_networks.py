"""Import Networks Use Case - Pushes networks and gateways to the destination.

Networks follow the same existence-check/reuse pattern as applications.
Gateways are upserted with delete-then-create, like devices: the
network's gateways are listed once, and a gateway whose MAC is already
present is deleted before being created again.
"""

import logging
from datetime import datetime, timezone

from ...api.exceptions import describe_error
from ...api.resilience import process_concurrent
from ..domain.entities import Network, SyncResult
from ..domain.ports import INetworkServerAPI
from .import_applications import RESOURCE_ERRORS

logger = logging.getLogger(__name__)


class ImportNetworksUseCase:
    """Creates or reuses networks, then (re)creates their gateways."""

    def __init__(
        self,
        network_server: INetworkServerAPI,
        provider: str = "source",
        max_concurrency: int = 1,
    ):
        self.api = network_server
        self.provider = provider
        self.max_concurrency = max_concurrency

    async def execute(self, networks: list[Network]) -> SyncResult:
        started_at = datetime.now(timezone.utc)
        result = SyncResult(phase="import_networks", started_at=started_at)

        if not networks:
            logger.info(f"[{self.provider}] No networks to import")
            return result

        logger.info(f"[{self.provider}] Importing {len(networks)} networks ...")

        partials = await process_concurrent(
            networks,
            self._import_network,
            max_concurrent=self.max_concurrency,
        )
        for partial in partials:
            result.merge(partial)

        duration = (datetime.now(timezone.utc) - started_at).total_seconds()
        logger.info(
            f"[{self.provider}] Network import completed in {duration:.2f}s: "
            f"created={result.created} reused={result.reused} failed={result.failed}"
        )
        return result

    async def _import_network(self, network: Network) -> SyncResult:
        result = SyncResult(phase="import_networks", started_at=datetime.now(timezone.utc))
        prefix = f"[{self.provider}][{network.name}]"

        try:
            network_id = await self.api.find_network_id(network.name)
            if network_id is not None:
                logger.info(f"{prefix} Reusing network {network_id}")
                result.record("reused", "network")
                existing = {
                    gw.key: gw.id for gw in await self.api.list_gateways(network_id)
                }
            else:
                network_id = await self.api.create_network(network)
                logger.info(f"{prefix} Created network {network_id}")
                result.record("created", "network")
                existing = {}
        except RESOURCE_ERRORS as e:
            message = f"{prefix}[NET] Skipping network: {describe_error(e)}"
            logger.error(message)
            result.add_error("network", message)
            return result

        for gateway in network.gateways:
            try:
                gateway_id = existing.get(gateway.mac_address)
                if gateway_id is not None:
                    await self.api.delete_gateway(network_id, gateway_id)
                    logger.debug(f"{prefix}[GW][{gateway.mac_address}] Replaced existing gateway")
                    result.record("deleted", "gateway")
                await self.api.create_gateway(network_id, gateway)
                result.record("created", "gateway")
            except RESOURCE_ERRORS as e:
                message = f"{prefix}[GW][{gateway.mac_address}] {describe_error(e)}"
                logger.warning(message)
                result.add_error("gateway", message)

        logger.info(
            f"{prefix} {result.created.get('gateway', 0)}/{len(network.gateways)} gateways"
        )
        return result
