"""Shared fixtures: an in-memory destination and entity factories."""

import pytest

from lorawan_migrate.api.exceptions import APIError, NotFoundError
from lorawan_migrate.sync.domain.entities import (
    ActivationMode,
    Application,
    Device,
    DeviceClass,
    Gateway,
    HardwareProfile,
    HttpPushOutput,
    Location,
    LorawanVersion,
    Network,
    RemoteResource,
)
from lorawan_migrate.sync.domain.ports import INetworkServerAPI


def server_error(endpoint: str) -> APIError:
    return APIError("boom", status_code=500, endpoint=endpoint, method="POST", response_body="boom")


class InMemoryNetworkServer(INetworkServerAPI):
    """In-memory implementation of INetworkServerAPI for testing.

    Attributes:
        failing_keys: DevEUIs / MACs whose creation fails with a 500
        failing_names: Application / network names whose lookup fails
    """

    def __init__(self):
        self.applications: dict[str, dict] = {}
        self.networks: dict[str, dict] = {}
        self.outputs: dict[str, list] = {}
        self.failing_keys: set[str] = set()
        self.failing_names: set[str] = set()
        self.calls: list[tuple] = []
        self._next_id = 0x1000

    def _new_id(self) -> str:
        self._next_id += 1
        return format(self._next_id, "X")

    # Applications

    async def find_application_id(self, name):
        self.calls.append(("find_application_id", name))
        if name in self.failing_names:
            raise server_error("/1/nwk/apps")
        for app_id, app in self.applications.items():
            if app["title"] == name:
                return app_id
        return None

    async def create_application(self, app):
        self.calls.append(("create_application", app.name))
        app_id = self._new_id()
        self.applications[app_id] = {"title": app.name, "capacity": app.capacity, "devices": {}}
        self.outputs[app_id] = []
        return app_id

    async def delete_application(self, app_id):
        self.calls.append(("delete_application", app_id))
        del self.applications[app_id]

    async def list_applications(self):
        return [RemoteResource(id=i, key=a["title"]) for i, a in self.applications.items()]

    async def create_output(self, app_id, output):
        self.calls.append(("create_output", app_id, output.name))
        if output.name in self.failing_keys:
            raise server_error(f"/1/nwk/app/{app_id}/outputs")
        self.outputs[app_id].append(output)

    # Devices

    async def create_device(self, app_id, device):
        self.calls.append(("create_device", app_id, device.dev_eui))
        if device.dev_eui in self.failing_keys:
            raise server_error(f"/1/nwk/app/{app_id}/devices/{device.activation_mode.value}")
        self.applications[app_id]["devices"][device.dev_eui] = device
        return device.dev_eui

    async def delete_device(self, app_id, dev_eui):
        self.calls.append(("delete_device", app_id, dev_eui))
        return self.applications[app_id]["devices"].pop(dev_eui, None) is not None

    async def list_devices(self, app_id):
        return [RemoteResource(id=e, key=e) for e in self.applications[app_id]["devices"]]

    async def count_devices(self, app_id):
        return len(self.applications[app_id]["devices"])

    # Networks

    async def find_network_id(self, name):
        self.calls.append(("find_network_id", name))
        if name in self.failing_names:
            raise server_error("/1/nwk/networks")
        for network_id, network in self.networks.items():
            if network["name"] == name:
                return network_id
        return None

    async def create_network(self, network):
        self.calls.append(("create_network", network.name))
        network_id = self._new_id()
        self.networks[network_id] = {"name": network.name, "gateways": {}}
        return network_id

    async def delete_network(self, network_id):
        self.calls.append(("delete_network", network_id))
        del self.networks[network_id]

    async def list_networks(self):
        return [RemoteResource(id=i, key=n["name"]) for i, n in self.networks.items()]

    # Gateways

    async def create_gateway(self, network_id, gateway):
        self.calls.append(("create_gateway", network_id, gateway.mac_address))
        if gateway.mac_address in self.failing_keys:
            raise server_error(f"/1/nwk/network/{network_id}/gateways")
        gateway_id = self._new_id()
        self.networks[network_id]["gateways"][gateway_id] = gateway
        return gateway_id

    async def delete_gateway(self, network_id, gateway_id):
        self.calls.append(("delete_gateway", network_id, gateway_id))
        gateways = self.networks[network_id]["gateways"]
        if gateway_id not in gateways:
            raise NotFoundError("Gateway", gateway_id)
        del gateways[gateway_id]

    async def list_gateways(self, network_id):
        return [
            RemoteResource(id=i, key=g.mac_address)
            for i, g in self.networks[network_id]["gateways"].items()
        ]

    async def count_gateways(self, network_id):
        return len(self.networks[network_id]["gateways"])

    # Helpers

    def devices_of(self, name: str) -> list[str]:
        for app in self.applications.values():
            if app["title"] == name:
                return list(app["devices"])
        return []

    def gateways_of(self, name: str) -> list[str]:
        for network in self.networks.values():
            if network["name"] == name:
                return [g.mac_address for g in network["gateways"].values()]
        return []


def make_device(dev_eui: str, title: str = "Sensor") -> Device:
    return Device(
        title=title,
        dev_eui=dev_eui,
        device_class=DeviceClass.A,
        lorawan_version=LorawanVersion.V1_0,
        activation_mode=ActivationMode.OTAA,
        app_key="2B7E151628AED2A6ABF7158809CF4F3C",
        join_eui="70B3D57ED0000000",
    )


def make_gateway(mac: str) -> Gateway:
    return Gateway(
        title=f"GW {mac}",
        mac_address=mac,
        location=Location(lat=46.8, lon=7.1),
        hardware_profile=HardwareProfile(
            base="kerlink", bus="SPI", card="", concentrator="kerlink_femtocell", model="istation"
        ),
    )


@pytest.fixture
def network_server():
    return InMemoryNetworkServer()


@pytest.fixture
def farm():
    return Application(
        name="Farm",
        outputs=(HttpPushOutput(name="HTTP", url="https://hooks.example.com"),),
        devices=tuple(make_device(f"000000000000000{i}") for i in range(1, 4)),
    )


@pytest.fixture
def paris():
    return Network(
        name="Paris",
        gateways=(make_gateway("72:76:FF:00:00:01"), make_gateway("72:76:FF:00:00:02")),
    )


@pytest.fixture
def device_factory():
    return make_device


@pytest.fixture
def gateway_factory():
    return make_gateway
