"""gRPC source reader for ChirpStack v4.

Pages through the tenant's applications, devices and gateways with the
ChirpStack API stubs over a ``grpc.aio`` channel, enriches every device with
its activation, keys and device profile, and hands the messages to
ChirpstackMapper.

Usage:
    async with GrpcSourceReader("chirpstack:8080", token, tenant_id) as reader:
        applications = await reader.load_applications()
        networks = await reader.load_networks()
"""

import logging
from typing import Any, Callable, Optional

import grpc
from chirpstack_api import api

from ...api.exceptions import (
    SourceResponseError,
    TranslationError,
    describe_error,
)
from ..domain.entities import Application, Device, Network, Output
from ..domain.ports import ISourceReader
from .chirpstack_mapper import ChirpstackMapper

logger = logging.getLogger(__name__)

PAGE_SIZE = 10


class GrpcSourceReader(ISourceReader):
    """Loads applications and gateways of one ChirpStack tenant.

    Device profiles are cached per reader instance: several devices
    usually share one profile.
    """

    provider = "chirpstack"

    def __init__(
        self,
        url: str,
        api_token: str,
        tenant_id: str,
        mapper: Optional[ChirpstackMapper] = None,
        network_name: str = "Chirpstack",
        page_size: int = PAGE_SIZE,
        channel: Optional[grpc.aio.Channel] = None,
        stubs: Optional[dict[str, Any]] = None,
    ):
        """Initialize the reader.

        Args:
            url: ChirpStack gRPC endpoint (host:port)
            api_token: API token sent as a bearer token
            tenant_id: Tenant whose resources are migrated
            mapper: Message mapper (defaults to ChirpstackMapper())
            network_name: Name of the single destination network receiving all gateways
            page_size: Page size of every List RPC
            channel: Pre-built channel; one is opened on __aenter__ otherwise
            stubs: Pre-built service stubs keyed by service name
        """
        self.url = url
        self.api_token = api_token
        self.tenant_id = tenant_id
        self.mapper = mapper or ChirpstackMapper()
        self.network_name = network_name
        self.page_size = page_size

        self._channel = channel
        self._owns_channel = False
        self._stubs: dict[str, Any] = dict(stubs or {})
        self._profiles: dict[str, Any] = {}

    # ----------------------------------------
    # Context Manager Protocol
    # ----------------------------------------

    async def __aenter__(self) -> "GrpcSourceReader":
        if self._channel is None and len(self._stubs) == 0:
            self._channel = grpc.aio.insecure_channel(self.url)
            self._owns_channel = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._owns_channel and self._channel is not None:
            await self._channel.close()
            self._channel = None
            self._owns_channel = False

    # ----------------------------------------
    # Low-Level RPC Helpers
    # ----------------------------------------

    @property
    def _metadata(self) -> list[tuple[str, str]]:
        return [("authorization", f"Bearer {self.api_token}")]

    def _stub(self, service: str) -> Any:
        if service not in self._stubs:
            if self._channel is None:
                raise RuntimeError(
                    "GrpcSourceReader must be used as async context manager: "
                    "async with GrpcSourceReader(...) as reader:"
                )
            self._stubs[service] = getattr(api, f"{service}Stub")(self._channel)
        return self._stubs[service]

    async def _call(self, service: str, rpc: str, request: Any) -> Any:
        response = await getattr(self._stub(service), rpc)(request, metadata=self._metadata)
        if response is None:
            raise SourceResponseError(
                "gRPC response undefined",
                provider=self.provider,
                rpc=f"{service}.{rpc}",
            )
        return response

    def _require(self, response: Any, field: str, rpc: str) -> Any:
        """Return ``response.<field>``; a missing sub-message is fatal."""
        if not response.HasField(field):
            raise SourceResponseError(
                f"{rpc} response has no {field}",
                provider=self.provider,
                rpc=rpc,
                field=field,
            )
        return getattr(response, field)

    async def _list(
        self,
        service: str,
        build_request: Callable[[int, int], Any],
    ) -> list[Any]:
        """Aggregate all pages of a <Service>.List RPC.

        Stops as soon as the accumulated count reaches the reported
        ``total_count``.
        """
        records: list[Any] = []
        offset = 0
        while True:
            response = await self._call(service, "List", build_request(self.page_size, offset))
            page = list(response.result)
            records.extend(page)

            if len(records) >= response.total_count:
                break
            if not page:
                raise SourceResponseError(
                    f"{service}.List returned 0 records at offset {offset} "
                    f"while total_count is {response.total_count}",
                    provider=self.provider,
                    rpc=f"{service}.List",
                    field="result",
                )
            offset += self.page_size
        return records

    # ----------------------------------------
    # Applications
    # ----------------------------------------

    async def load_applications(self) -> list[Application]:
        logger.info(f"[{self.provider}] Loading applications of tenant {self.tenant_id} ...")

        items = await self._list(
            "ApplicationService",
            lambda limit, offset: api.ListApplicationsRequest(
                tenant_id=self.tenant_id, limit=limit, offset=offset
            ),
        )

        applications = []
        for item in items:
            devices = await self._load_devices(item.id, item.name)
            outputs = await self._load_outputs(item.id, item.name)
            applications.append(
                Application(name=item.name, outputs=tuple(outputs), devices=tuple(devices))
            )

        logger.info(
            f"[{self.provider}] Loaded {len(applications)} applications, "
            f"{sum(len(a.devices) for a in applications)} devices"
        )
        return applications

    async def _load_devices(self, application_id: str, application_name: str) -> list[Device]:
        items = await self._list(
            "DeviceService",
            lambda limit, offset: api.ListDevicesRequest(
                application_id=application_id, limit=limit, offset=offset
            ),
        )

        devices = []
        for item in items:
            try:
                devices.append(await self._load_device(item.dev_eui))
            except (TranslationError, grpc.aio.AioRpcError) as e:
                logger.warning(
                    f"[{self.provider}][{application_name}][DEV][{item.dev_eui}] "
                    f"Unable to load device: {describe_error(e)}"
                )
        return devices

    async def _load_device(self, dev_eui: str) -> Device:
        response = await self._call("DeviceService", "Get", api.GetDeviceRequest(dev_eui=dev_eui))
        device = self._require(response, "device", "DeviceService.Get")

        activation = await self._get_activation(dev_eui)
        keys = await self._get_keys(dev_eui)
        profile = await self._get_profile(device.device_profile_id)

        return self.mapper.map_device(device, activation, keys, profile)

    async def _get_activation(self, dev_eui: str) -> Optional[Any]:
        """Activation record, None for OTAA devices that never joined."""
        try:
            response = await self._call(
                "DeviceService", "GetActivation", api.GetDeviceActivationRequest(dev_eui=dev_eui)
            )
        except grpc.aio.AioRpcError as e:
            if e.code() == grpc.StatusCode.NOT_FOUND:
                return None
            raise
        if not response.HasField("device_activation"):
            return None
        return response.device_activation

    async def _get_keys(self, dev_eui: str) -> Optional[Any]:
        """Root keys, None when ChirpStack reports NOT_FOUND (ABP devices)."""
        try:
            response = await self._call(
                "DeviceService", "GetKeys", api.GetDeviceKeysRequest(dev_eui=dev_eui)
            )
        except grpc.aio.AioRpcError as e:
            if e.code() == grpc.StatusCode.NOT_FOUND:
                return None
            raise
        return self._require(response, "device_keys", "DeviceService.GetKeys")

    async def _get_profile(self, profile_id: str) -> Any:
        if profile_id not in self._profiles:
            response = await self._call(
                "DeviceProfileService", "Get", api.GetDeviceProfileRequest(id=profile_id)
            )
            self._profiles[profile_id] = self._require(
                response, "device_profile", "DeviceProfileService.Get"
            )
        return self._profiles[profile_id]

    async def _load_outputs(self, application_id: str, application_name: str) -> list[Output]:
        response = await self._call(
            "ApplicationService",
            "ListIntegrations",
            api.ListIntegrationsRequest(application_id=application_id),
        )

        outputs: list[Output] = []
        for item in response.result:
            kind = api.IntegrationKind.Name(item.kind)
            if item.kind != api.IntegrationKind.HTTP:
                logger.warning(
                    f"[{self.provider}][{application_name}][OUT][{kind}] "
                    "Skipping integration: unsupported integration kind"
                )
                continue
            try:
                http = await self._call(
                    "ApplicationService",
                    "GetHttpIntegration",
                    api.GetHttpIntegrationRequest(application_id=application_id),
                )
                integration = self._require(
                    http, "integration", "ApplicationService.GetHttpIntegration"
                )
                outputs.append(self.mapper.map_http_integration(integration))
            except (TranslationError, grpc.aio.AioRpcError) as e:
                logger.warning(
                    f"[{self.provider}][{application_name}][OUT][{kind}] "
                    f"Skipping integration: {describe_error(e)}"
                )
        return outputs

    # ----------------------------------------
    # Networks
    # ----------------------------------------

    async def load_networks(self) -> list[Network]:
        logger.info(f"[{self.provider}] Loading gateways of tenant {self.tenant_id} ...")

        items = await self._list(
            "GatewayService",
            lambda limit, offset: api.ListGatewaysRequest(
                tenant_id=self.tenant_id, limit=limit, offset=offset
            ),
        )

        gateways = []
        for item in items:
            try:
                gateways.append(self.mapper.map_gateway(item))
            except TranslationError as e:
                logger.warning(
                    f"[{self.provider}][{self.network_name}][GW][{item.gateway_id}] "
                    f"Unable to translate gateway: {e.message}"
                )

        if not gateways:
            logger.info(f"[{self.provider}] No gateways to migrate")
            return []

        logger.info(f"[{self.provider}] Loaded {len(gateways)} gateways")
        return [Network(name=self.network_name, gateways=tuple(gateways))]
