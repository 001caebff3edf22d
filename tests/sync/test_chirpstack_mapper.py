"""Tests for ChirpstackMapper using real ChirpStack API messages."""

import pytest
from chirpstack_api import api, common

from lorawan_migrate.api.exceptions import TranslationError
from lorawan_migrate.sync.adapters.chirpstack_mapper import ChirpstackMapper
from lorawan_migrate.sync.adapters.lorawan_rules import BASICS_STATION_PROFILE, DEFAULT_LOCATION
from lorawan_migrate.sync.domain.entities import (
    ActivationMode,
    DeviceClass,
    LorawanVersion,
    OutputType,
)


@pytest.fixture
def mapper():
    return ChirpstackMapper(region="EU868")


@pytest.fixture
def device():
    return api.Device(
        dev_eui="70b3d57ed0001234",
        name="Meter",
        join_eui="70b3d57ed0000000",
        device_profile_id="profile-1",
    )


@pytest.fixture
def otaa_profile():
    return api.DeviceProfile(
        id="profile-1",
        mac_version=common.MacVersion.LORAWAN_1_0_3,
        supports_otaa=True,
        supports_class_c=False,
    )


class TestMapDevice:
    def test_otaa_device_uses_root_key(self, mapper, device, otaa_profile):
        keys = api.DeviceKeys(nwk_key="2b7e151628aed2a6abf7158809cf4f3c")

        result = mapper.map_device(device, None, keys, otaa_profile)

        assert result.activation_mode == ActivationMode.OTAA
        assert result.device_class == DeviceClass.A
        assert result.lorawan_version == LorawanVersion.V1_0
        assert result.app_key == "2B7E151628AED2A6ABF7158809CF4F3C"
        assert result.join_eui == "70B3D57ED0000000"
        assert result.rx_window_policy == 1
        assert result.downlink_frame_counter == 0

    def test_abp_device_uses_activation(self, mapper, device):
        profile = api.DeviceProfile(
            mac_version=common.MacVersion.LORAWAN_1_1_0,
            supports_otaa=False,
            supports_class_c=True,
        )
        activation = api.DeviceActivation(
            dev_addr="01020304",
            nwk_s_enc_key="000102030405060708090a0b0c0d0e0f",
            app_s_key="0f0e0d0c0b0a09080706050403020100",
            f_cnt_up=17,
            n_f_cnt_down=5,
        )

        result = mapper.map_device(device, activation, None, profile)

        assert result.activation_mode == ActivationMode.ABP
        assert result.device_class == DeviceClass.C
        assert result.lorawan_version == LorawanVersion.V1_1
        assert result.dev_addr == "01020304"
        assert result.uplink_frame_counter == 17
        assert result.downlink_frame_counter == 5
        assert result.rx_window_policy == 2

    def test_otaa_without_keys_fails(self, mapper, device, otaa_profile):
        with pytest.raises(TranslationError):
            mapper.map_device(device, None, None, otaa_profile)


class TestMapHttpIntegration:
    def test_headers_sorted(self, mapper):
        integration = api.HttpIntegration(
            event_endpoint_url="https://hooks.example.com",
            headers={"X-B": "2", "X-A": "1"},
        )

        output = mapper.map_http_integration(integration)

        assert output.output_type == OutputType.HTTP_PUSH
        assert output.name == "HTTP"
        assert [h.key for h in output.custom_headers] == ["X-A", "X-B"]

    def test_missing_url(self, mapper):
        with pytest.raises(TranslationError):
            mapper.map_http_integration(api.HttpIntegration())


class TestMapGateway:
    def test_gateway_with_location(self, mapper):
        item = api.GatewayListItem(
            gateway_id="0016c0fffe001234",
            name="Roof",
            description="North side",
            location=common.Location(latitude=48.85, longitude=2.35),
        )

        gateway = mapper.map_gateway(item)

        assert gateway.mac_address == "00:16:C0:00:12:34"
        assert gateway.custom_identifier == "0016C0FFFE001234"
        assert gateway.notes == "North side"
        assert gateway.region == "EU863-870"
        assert gateway.hardware_profile == BASICS_STATION_PROFILE
        assert gateway.location.lat == 48.85

    def test_gateway_without_location(self, mapper):
        gateway = mapper.map_gateway(api.GatewayListItem(gateway_id="0016c0fffe001234"))

        assert gateway.location == DEFAULT_LOCATION
        assert gateway.title == "0016C0FFFE001234"
        assert gateway.notes is None

    def test_unmapped_region(self):
        assert ChirpstackMapper(region="XX000").region is None
