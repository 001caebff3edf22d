"""Network server API adapter for the destination REST API.

This adapter implements INetworkServerAPI and wraps NetworkServerClient
to provide resource-specific operations (applications, outputs, devices,
networks, gateways).

Identifiers come back from the server as integers and are rendered as
upper-case hexadecimal strings, the form every URL expects.
"""

from typing import TYPE_CHECKING, Any, Optional

from ...api.exceptions import APIError, NotFoundError, PaginationError
from ..domain.entities import Application, Device, Gateway, Network, Output, RemoteResource
from ..domain.ports import INetworkServerAPI
from .schemas import (
    ApplicationCreateRequest,
    DeviceCreateRequest,
    GatewayCreateRequest,
    NetworkCreateRequest,
    OutputCreateRequest,
    to_body,
)

if TYPE_CHECKING:
    from ...api.client import NetworkServerClient, PaginationConfig


def hex_id(value: Any) -> str:
    """Render a destination id as upper-case hex.

    >>> hex_id(1234)
    '4D2'
    """
    return format(int(value), "X")


class NetworkServerAPI(INetworkServerAPI):
    """Destination network server adapter.

    Wraps NetworkServerClient; every list operation follows all pages with
    the configured page size.
    """

    APPS_ENDPOINT = "/1/nwk/apps"
    APP_ENDPOINT = "/1/nwk/app/{app_id}"
    OUTPUTS_ENDPOINT = "/1/nwk/app/{app_id}/outputs"
    DEVICES_ENDPOINT = "/1/nwk/app/{app_id}/devices"
    DEVICE_ENDPOINT = "/1/nwk/app/{app_id}/device/{dev_eui}"
    NETWORKS_ENDPOINT = "/1/nwk/networks"
    NETWORK_ENDPOINT = "/1/nwk/network/{network_id}"
    GATEWAYS_ENDPOINT = "/1/nwk/network/{network_id}/gateways"
    GATEWAY_ENDPOINT = "/1/nwk/network/{network_id}/gateway/{gateway_id}"

    def __init__(
        self,
        client: "NetworkServerClient",
        pagination_config: "PaginationConfig | None" = None,
    ):
        """Initialize the API adapter.

        Args:
            client: Configured NetworkServerClient instance
            pagination_config: Optional pagination config override.
                             Defaults to DEFAULT_PAGINATION if not provided.
        """
        self.client = client
        self._pagination_config = pagination_config

    @property
    def pagination_config(self) -> "PaginationConfig":
        if self._pagination_config is None:
            from ...api.client import DEFAULT_PAGINATION
            self._pagination_config = DEFAULT_PAGINATION
        return self._pagination_config

    # ----------------------------------------
    # Helpers
    # ----------------------------------------

    async def _find_by_name(self, endpoint: str, field: str, key: str, name: str) -> Optional[str]:
        """Search with ``filter=name~`` then keep the exact match only.

        The server filter is a substring match: "Farm" also returns
        "Farm 2".
        """
        items = await self.client.fetch_all(
            endpoint,
            field=field,
            config=self.pagination_config,
            params={"filter": f"name~{name}"},
        )
        for item in items:
            if item.get(key) == name:
                return hex_id(item["_id"])
        return None

    async def _list(self, endpoint: str, field: str, key: str) -> list[RemoteResource]:
        items = await self.client.fetch_all(endpoint, field=field, config=self.pagination_config)
        return [
            RemoteResource(id=hex_id(item["_id"]), key=str(item.get(key) or ""))
            for item in items
        ]

    async def _count(self, endpoint: str, field: str) -> int:
        data = await self.client.get(endpoint, params={"perPage": 1, "page": 1})
        if "total" not in data:
            raise PaginationError(
                f"{endpoint} total not found in the response",
                endpoint=endpoint,
                field=field,
            )
        return int(data["total"])

    @staticmethod
    def _created_id(data: dict[str, Any], endpoint: str) -> str:
        if "_id" not in data:
            raise APIError(
                f"POST {endpoint} response has no _id",
                status_code=200,
                endpoint=endpoint,
                response_body=str(data)[:200],
                method="POST",
            )
        return hex_id(data["_id"])

    # ----------------------------------------
    # Applications
    # ----------------------------------------

    async def find_application_id(self, name: str) -> Optional[str]:
        return await self._find_by_name(self.APPS_ENDPOINT, "apps", "title", name)

    async def create_application(self, app: Application) -> str:
        body = to_body(ApplicationCreateRequest.from_entity(app))
        data = await self.client.post(self.APPS_ENDPOINT, json_body=body)
        return self._created_id(data, self.APPS_ENDPOINT)

    async def delete_application(self, app_id: str) -> None:
        await self.client.delete(self.APP_ENDPOINT.format(app_id=app_id))

    async def list_applications(self) -> list[RemoteResource]:
        return await self._list(self.APPS_ENDPOINT, "apps", "title")

    async def create_output(self, app_id: str, output: Output) -> None:
        body = to_body(OutputCreateRequest.from_entity(output))
        await self.client.post(self.OUTPUTS_ENDPOINT.format(app_id=app_id), json_body=body)

    # ----------------------------------------
    # Devices
    # ----------------------------------------

    async def create_device(self, app_id: str, device: Device) -> str:
        endpoint = (
            f"{self.DEVICES_ENDPOINT.format(app_id=app_id)}/{device.activation_mode.value}"
        )
        body = to_body(DeviceCreateRequest.from_entity(device))
        data = await self.client.post(endpoint, json_body=body)
        return str(data.get("deveui") or device.dev_eui)

    async def delete_device(self, app_id: str, dev_eui: str) -> bool:
        try:
            await self.client.delete(self.DEVICE_ENDPOINT.format(app_id=app_id, dev_eui=dev_eui))
        except NotFoundError:
            return False
        return True

    async def list_devices(self, app_id: str) -> list[RemoteResource]:
        items = await self.client.fetch_all(
            self.DEVICES_ENDPOINT.format(app_id=app_id),
            field="devices",
            config=self.pagination_config,
        )
        resources = []
        for item in items:
            dev_eui = str(item.get("deveui") or item.get("_id") or "").upper()
            resources.append(RemoteResource(id=dev_eui, key=dev_eui))
        return resources

    async def count_devices(self, app_id: str) -> int:
        return await self._count(self.DEVICES_ENDPOINT.format(app_id=app_id), "devices")

    # ----------------------------------------
    # Networks
    # ----------------------------------------

    async def find_network_id(self, name: str) -> Optional[str]:
        return await self._find_by_name(self.NETWORKS_ENDPOINT, "networks", "name", name)

    async def create_network(self, network: Network) -> str:
        body = to_body(NetworkCreateRequest.from_entity(network))
        data = await self.client.post(self.NETWORKS_ENDPOINT, json_body=body)
        return self._created_id(data, self.NETWORKS_ENDPOINT)

    async def delete_network(self, network_id: str) -> None:
        await self.client.delete(self.NETWORK_ENDPOINT.format(network_id=network_id))

    async def list_networks(self) -> list[RemoteResource]:
        return await self._list(self.NETWORKS_ENDPOINT, "networks", "name")

    # ----------------------------------------
    # Gateways
    # ----------------------------------------

    async def create_gateway(self, network_id: str, gateway: Gateway) -> str:
        endpoint = self.GATEWAYS_ENDPOINT.format(network_id=network_id)
        body = to_body(GatewayCreateRequest.from_entity(gateway))
        data = await self.client.post(endpoint, json_body=body)
        return self._created_id(data, endpoint)

    async def delete_gateway(self, network_id: str, gateway_id: str) -> None:
        await self.client.delete(
            self.GATEWAY_ENDPOINT.format(network_id=network_id, gateway_id=gateway_id)
        )

    async def list_gateways(self, network_id: str) -> list[RemoteResource]:
        items = await self.client.fetch_all(
            self.GATEWAYS_ENDPOINT.format(network_id=network_id),
            field="gateways",
            config=self.pagination_config,
        )
        return [
            RemoteResource(id=hex_id(item["_id"]), key=str(item.get("MAC") or "").upper())
            for item in items
        ]

    async def count_gateways(self, network_id: str) -> int:
        return await self._count(self.GATEWAYS_ENDPOINT.format(network_id=network_id), "gateways")
