"""Tests for GrpcSourceReader.

Service stubs are replaced with AsyncMock methods returning real
ChirpStack API responses.
"""

from unittest.mock import AsyncMock, MagicMock

import grpc
import pytest
from chirpstack_api import api, common

from lorawan_migrate.api.exceptions import SourceResponseError
from lorawan_migrate.sync.adapters.grpc_reader import GrpcSourceReader

DEV_EUI = "70b3d57ed0001234"


def rpc_error(code: grpc.StatusCode, details: str = "") -> grpc.aio.AioRpcError:
    return grpc.aio.AioRpcError(code, grpc.aio.Metadata(), grpc.aio.Metadata(), details=details)


def paged(response_type, items, total=None):
    """List RPC mock serving ``items`` by limit/offset."""

    async def serve(request, metadata=None):
        page = items[request.offset:request.offset + request.limit]
        return response_type(total_count=len(items) if total is None else total, result=page)

    return AsyncMock(side_effect=serve)


@pytest.fixture
def stubs():
    application_service = MagicMock()
    application_service.List = paged(
        api.ListApplicationsResponse, [api.ApplicationListItem(id="app-1", name="Farm")]
    )
    application_service.ListIntegrations = AsyncMock(
        return_value=api.ListIntegrationsResponse(
            total_count=2,
            result=[
                api.IntegrationListItem(kind=api.IntegrationKind.HTTP),
                api.IntegrationListItem(kind=api.IntegrationKind.MQTT_GLOBAL),
            ],
        )
    )
    application_service.GetHttpIntegration = AsyncMock(
        return_value=api.GetHttpIntegrationResponse(
            integration=api.HttpIntegration(event_endpoint_url="https://hooks.example.com")
        )
    )

    device_service = MagicMock()
    device_service.List = paged(api.ListDevicesResponse, [api.DeviceListItem(dev_eui=DEV_EUI)])
    device_service.Get = AsyncMock(
        return_value=api.GetDeviceResponse(
            device=api.Device(
                dev_eui=DEV_EUI,
                name="Meter",
                join_eui="70b3d57ed0000000",
                device_profile_id="profile-1",
            )
        )
    )
    device_service.GetActivation = AsyncMock(side_effect=rpc_error(grpc.StatusCode.NOT_FOUND))
    device_service.GetKeys = AsyncMock(
        return_value=api.GetDeviceKeysResponse(
            device_keys=api.DeviceKeys(nwk_key="2b7e151628aed2a6abf7158809cf4f3c")
        )
    )

    profile_service = MagicMock()
    profile_service.Get = AsyncMock(
        return_value=api.GetDeviceProfileResponse(
            device_profile=api.DeviceProfile(
                id="profile-1",
                mac_version=common.MacVersion.LORAWAN_1_0_3,
                supports_otaa=True,
            )
        )
    )

    gateway_service = MagicMock()
    gateway_service.List = paged(
        api.ListGatewaysResponse,
        [api.GatewayListItem(gateway_id=f"0016c0fffe00000{i}", name=f"GW{i}") for i in range(3)],
    )

    return {
        "ApplicationService": application_service,
        "DeviceService": device_service,
        "DeviceProfileService": profile_service,
        "GatewayService": gateway_service,
    }


def make_reader(stubs, **kwargs):
    return GrpcSourceReader("chirpstack:8080", "token", "tenant-1", stubs=stubs, **kwargs)


class TestLoadApplications:
    async def test_application_with_device_and_http_output(self, stubs):
        async with make_reader(stubs) as reader:
            applications = await reader.load_applications()

        assert len(applications) == 1
        app = applications[0]
        assert app.name == "Farm"
        assert app.devices[0].dev_eui == DEV_EUI.upper()
        assert app.devices[0].app_key == "2B7E151628AED2A6ABF7158809CF4F3C"
        # MQTT_GLOBAL is not migrated.
        assert len(app.outputs) == 1
        assert app.outputs[0].url == "https://hooks.example.com"

    async def test_bearer_token_metadata(self, stubs):
        async with make_reader(stubs) as reader:
            await reader.load_applications()

        _, kwargs = stubs["ApplicationService"].List.call_args
        assert kwargs["metadata"] == [("authorization", "Bearer token")]

    async def test_keys_not_found_is_not_an_error(self, stubs):
        stubs["DeviceService"].GetKeys = AsyncMock(side_effect=rpc_error(grpc.StatusCode.NOT_FOUND))
        stubs["DeviceService"].GetActivation = AsyncMock(
            return_value=api.GetDeviceActivationResponse(
                device_activation=api.DeviceActivation(
                    dev_addr="01020304",
                    nwk_s_enc_key="000102030405060708090a0b0c0d0e0f",
                    app_s_key="0f0e0d0c0b0a09080706050403020100",
                    f_cnt_up=3,
                    n_f_cnt_down=9,
                )
            )
        )
        stubs["DeviceProfileService"].Get = AsyncMock(
            return_value=api.GetDeviceProfileResponse(
                device_profile=api.DeviceProfile(
                    mac_version=common.MacVersion.LORAWAN_1_0_2, supports_otaa=False
                )
            )
        )

        async with make_reader(stubs) as reader:
            applications = await reader.load_applications()

        device = applications[0].devices[0]
        assert device.dev_addr == "01020304"
        assert device.downlink_frame_counter == 9

    async def test_failing_device_is_skipped(self, stubs):
        stubs["DeviceService"].List = paged(
            api.ListDevicesResponse,
            [
                api.DeviceListItem(dev_eui="0000000000000001"),
                api.DeviceListItem(dev_eui="0000000000000002"),
                api.DeviceListItem(dev_eui="0000000000000003"),
            ],
        )

        async def get_device(request, metadata=None):
            if request.dev_eui == "0000000000000002":
                raise rpc_error(grpc.StatusCode.INTERNAL, "boom")
            return api.GetDeviceResponse(
                device=api.Device(
                    dev_eui=request.dev_eui,
                    join_eui="70b3d57ed0000000",
                    device_profile_id="profile-1",
                )
            )

        stubs["DeviceService"].Get = AsyncMock(side_effect=get_device)

        async with make_reader(stubs) as reader:
            applications = await reader.load_applications()

        assert [d.dev_eui for d in applications[0].devices] == [
            "0000000000000001",
            "0000000000000003",
        ]

    async def test_device_profile_cached(self, stubs):
        stubs["DeviceService"].List = paged(
            api.ListDevicesResponse,
            [api.DeviceListItem(dev_eui=DEV_EUI), api.DeviceListItem(dev_eui=DEV_EUI)],
        )

        async with make_reader(stubs) as reader:
            await reader.load_applications()

        assert stubs["DeviceProfileService"].Get.await_count == 1

    async def test_missing_device_field_is_fatal(self, stubs):
        stubs["DeviceService"].Get = AsyncMock(return_value=api.GetDeviceResponse())

        async with make_reader(stubs) as reader:
            with pytest.raises(SourceResponseError):
                await reader.load_applications()


class TestPagination:
    async def test_pages_until_total_count(self, stubs):
        items = [api.GatewayListItem(gateway_id=f"0016c0fffe0000{i:02d}") for i in range(25)]
        stubs["GatewayService"].List = paged(api.ListGatewaysResponse, items)

        async with make_reader(stubs, page_size=10) as reader:
            networks = await reader.load_networks()

        assert stubs["GatewayService"].List.await_count == 3
        assert len(networks[0].gateways) == 25

    async def test_empty_page_inside_total_is_fatal(self, stubs):
        stubs["GatewayService"].List = paged(
            api.ListGatewaysResponse,
            [api.GatewayListItem(gateway_id="0016c0fffe000001")],
            total=5,
        )

        async with make_reader(stubs, page_size=1) as reader:
            with pytest.raises(SourceResponseError):
                await reader.load_networks()


class TestLoadNetworks:
    async def test_single_named_network(self, stubs):
        async with make_reader(stubs, network_name="Legacy") as reader:
            networks = await reader.load_networks()

        assert len(networks) == 1
        assert networks[0].name == "Legacy"
        assert len(networks[0].gateways) == 3

    async def test_no_gateways(self, stubs):
        stubs["GatewayService"].List = paged(api.ListGatewaysResponse, [])

        async with make_reader(stubs) as reader:
            assert await reader.load_networks() == []
