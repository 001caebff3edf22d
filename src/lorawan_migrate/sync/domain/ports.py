"""Port interfaces for migration operations.

Ports define the contracts between the use cases and the infrastructure.
These are abstract base classes that adapters must implement.

Following the Hexagonal Architecture (Ports and Adapters) pattern:
- Source readers (gRPC, CSV) implement ISourceReader
- The destination REST adapter implements INetworkServerAPI
- Use cases depend only on these ports, never on aiohttp or grpc
"""

from abc import ABC, abstractmethod

from .entities import Application, Device, Gateway, Network, Output, RemoteResource


class ISourceReader(ABC):
    """Port for loading a legacy inventory.

    Implementations own the whole adaptation from the provider's native
    records to Application / Network entities. Per-entity translation
    failures are logged and skipped inside the reader; only failures that
    leave the inventory in an unknown state are raised.
    """

    provider: str = "source"

    async def __aenter__(self) -> "ISourceReader":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        return None

    @abstractmethod
    async def load_applications(self) -> list[Application]:
        """Load every application with its devices and outputs.

        Raises:
            SourceError: If the inventory cannot be read consistently
        """
        ...

    @abstractmethod
    async def load_networks(self) -> list[Network]:
        """Load every network with its gateways.

        Raises:
            SourceError: If the inventory cannot be read consistently
        """
        ...


class INetworkServerAPI(ABC):
    """Port for the destination network server.

    All identifiers passed in and returned are upper-case hex strings.
    """

    # ----------------------------------------
    # Applications
    # ----------------------------------------

    @abstractmethod
    async def find_application_id(self, name: str) -> str | None:
        """Return the id of the application titled exactly ``name``, if any."""
        ...

    @abstractmethod
    async def create_application(self, app: Application) -> str:
        ...

    @abstractmethod
    async def delete_application(self, app_id: str) -> None:
        ...

    @abstractmethod
    async def list_applications(self) -> list[RemoteResource]:
        """List every application (key = title), following all pages."""
        ...

    @abstractmethod
    async def create_output(self, app_id: str, output: Output) -> None:
        ...

    # ----------------------------------------
    # Devices
    # ----------------------------------------

    @abstractmethod
    async def create_device(self, app_id: str, device: Device) -> str:
        ...

    @abstractmethod
    async def delete_device(self, app_id: str, dev_eui: str) -> bool:
        """Delete a device.

        Returns:
            True if the device was deleted, False if it did not exist
        """
        ...

    @abstractmethod
    async def list_devices(self, app_id: str) -> list[RemoteResource]:
        """List every device of an application (key = DevEUI)."""
        ...

    @abstractmethod
    async def count_devices(self, app_id: str) -> int:
        ...

    # ----------------------------------------
    # Networks
    # ----------------------------------------

    @abstractmethod
    async def find_network_id(self, name: str) -> str | None:
        """Return the id of the network named exactly ``name``, if any."""
        ...

    @abstractmethod
    async def create_network(self, network: Network) -> str:
        ...

    @abstractmethod
    async def delete_network(self, network_id: str) -> None:
        ...

    @abstractmethod
    async def list_networks(self) -> list[RemoteResource]:
        """List every network (key = name), following all pages."""
        ...

    # ----------------------------------------
    # Gateways
    # ----------------------------------------

    @abstractmethod
    async def create_gateway(self, network_id: str, gateway: Gateway) -> str:
        ...

    @abstractmethod
    async def delete_gateway(self, network_id: str, gateway_id: str) -> None:
        ...

    @abstractmethod
    async def list_gateways(self, network_id: str) -> list[RemoteResource]:
        """List every gateway of a network (key = MAC address)."""
        ...

    @abstractmethod
    async def count_gateways(self, network_id: str) -> int:
        ...
