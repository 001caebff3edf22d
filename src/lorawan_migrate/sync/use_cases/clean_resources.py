"""Clean Resources Use Case - Pre-import hygiene on the destination.

Only resources about to be re-imported are touched:

1. Collect the DevEUIs (MAC addresses) of the inventory
2. List every destination application (network) and its devices (gateways)
3. Delete every child whose key is in the collected set
4. Re-count the remaining children of each parent that lost a child and
   delete the parent once it is empty

Parents with no matching child are never re-counted, so empty containers
unrelated to the inventory survive a clean.
"""

import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable

from ...api.exceptions import PaginationError, describe_error
from ...api.resilience import process_concurrent
from ..domain.entities import Application, Network, RemoteResource, SyncResult
from ..domain.ports import INetworkServerAPI
from .import_applications import RESOURCE_ERRORS

logger = logging.getLogger(__name__)


class CleanResourcesUseCase:
    """Deletes destination devices and gateways that the import will recreate.

    Example:
        use_case = CleanResourcesUseCase(NetworkServerAPI(client), provider="chirpstack")
        apps_result = await use_case.clean_applications(applications)
        nets_result = await use_case.clean_networks(networks)
    """

    def __init__(
        self,
        network_server: INetworkServerAPI,
        provider: str = "source",
        max_concurrency: int = 1,
    ):
        self.api = network_server
        self.provider = provider
        self.max_concurrency = max_concurrency

    async def clean_applications(self, applications: list[Application]) -> SyncResult:
        """Delete matching devices, then applications left empty.

        Raises:
            PaginationError: If a destination listing is inconsistent
        """
        dev_euis = {device.dev_eui for app in applications for device in app.devices}
        return await self._clean(
            phase="clean_applications",
            parent_kind="application",
            child_kind="device",
            keys=dev_euis,
            list_parents=self.api.list_applications,
            list_children=self.api.list_devices,
            delete_child=lambda parent_id, child: self.api.delete_device(parent_id, child.key),
            count_children=self.api.count_devices,
            delete_parent=self.api.delete_application,
        )

    async def clean_networks(self, networks: list[Network]) -> SyncResult:
        """Delete matching gateways, then networks left empty.

        Raises:
            PaginationError: If a destination listing is inconsistent
        """
        macs = {gateway.mac_address for network in networks for gateway in network.gateways}
        return await self._clean(
            phase="clean_networks",
            parent_kind="network",
            child_kind="gateway",
            keys=macs,
            list_parents=self.api.list_networks,
            list_children=self.api.list_gateways,
            delete_child=lambda parent_id, child: self.api.delete_gateway(parent_id, child.id),
            count_children=self.api.count_gateways,
            delete_parent=self.api.delete_network,
        )

    async def _clean(
        self,
        phase: str,
        parent_kind: str,
        child_kind: str,
        keys: set[str],
        list_parents: Callable[[], Awaitable[list[RemoteResource]]],
        list_children: Callable[[str], Awaitable[list[RemoteResource]]],
        delete_child: Callable[[str, RemoteResource], Awaitable[object]],
        count_children: Callable[[str], Awaitable[int]],
        delete_parent: Callable[[str], Awaitable[None]],
    ) -> SyncResult:
        started_at = datetime.now(timezone.utc)
        result = SyncResult(phase=phase, started_at=started_at)

        if not keys:
            logger.info(f"[{self.provider}] No {child_kind}s to clean")
            return result

        parents = await list_parents()
        logger.info(
            f"[{self.provider}] Cleaning {len(keys)} {child_kind}s "
            f"across {len(parents)} {parent_kind}s ..."
        )

        async def clean_parent(parent: RemoteResource) -> SyncResult:
            partial = SyncResult(phase=phase, started_at=datetime.now(timezone.utc))
            prefix = f"[{self.provider}][{parent.key}]"
            tag = "DEV" if child_kind == "device" else "GW"

            try:
                children = await list_children(parent.id)
            except PaginationError:
                raise
            except RESOURCE_ERRORS as e:
                message = f"{prefix} Skipping {parent_kind}: {describe_error(e)}"
                logger.error(message)
                partial.add_error(parent_kind, message)
                return partial

            matched = [child for child in children if child.key in keys]
            if not matched:
                return partial

            for child in matched:
                try:
                    await delete_child(parent.id, child)
                    partial.record("deleted", child_kind)
                    logger.debug(f"{prefix}[{tag}][{child.key}] Deleted")
                except RESOURCE_ERRORS as e:
                    message = f"{prefix}[{tag}][{child.key}] {describe_error(e)}"
                    logger.warning(message)
                    partial.add_error(child_kind, message)

            try:
                remaining = await count_children(parent.id)
                if remaining == 0:
                    await delete_parent(parent.id)
                    partial.record("deleted", parent_kind)
                    logger.info(f"{prefix} Deleted empty {parent_kind} {parent.id}")
                else:
                    logger.info(f"{prefix} Kept {parent_kind} with {remaining} {child_kind}s")
            except RESOURCE_ERRORS as e:
                message = f"{prefix} Unable to delete {parent_kind}: {describe_error(e)}"
                logger.warning(message)
                partial.add_error(parent_kind, message)

            return partial

        partials = await process_concurrent(
            parents,
            clean_parent,
            max_concurrent=self.max_concurrency,
        )
        for partial in partials:
            result.merge(partial)

        duration = (datetime.now(timezone.utc) - started_at).total_seconds()
        logger.info(
            f"[{self.provider}] {phase} completed in {duration:.2f}s: "
            f"deleted={result.deleted} failed={result.failed}"
        )
        return result
