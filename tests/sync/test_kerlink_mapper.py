"""Tests for KerlinkMapper.

Rows are already coerced (as CsvSourceReader produces them): numbers are
ints, JSON columns are dicts/lists, hex columns are strings.
"""

import pytest

from lorawan_migrate.api.exceptions import TranslationError, UnsupportedOutputError
from lorawan_migrate.sync.adapters.kerlink_mapper import KerlinkMapper
from lorawan_migrate.sync.adapters.schemas import OutputCreateRequest
from lorawan_migrate.sync.domain.entities import (
    ActivationMode,
    DeviceClass,
    Encoding,
    KerlinkHttpOutput,
    KerlinkMqttOutput,
    KerlinkWebsocketOutput,
    LorawanVersion,
    Verbosity,
)


@pytest.fixture
def mapper():
    return KerlinkMapper()


@pytest.fixture
def otaa_row():
    return {
        "devEui": "70b3d57ed0001234",
        "name": "Water meter",
        "classType": "A",
        "macVersion": "1.0.3",
        "activation": "OTAA",
        "appEui": "70b3d57ed0000000",
        "appKey": "2b7e151628aed2a6abf7158809cf4f3c",
        "adrEnabled": True,
        "rxWindows": None,
        "rx1Delay": 1,
        "fcntUp": 12,
        "fcntDown": 41,
        "clusterId": 1,
    }


@pytest.fixture
def abp_row():
    return {
        "devEui": "70b3d57ed0005678",
        "name": "Valve",
        "classType": "C",
        "macVersion": "1.1.1",
        "activation": "ABP",
        "dev_addr": "1a2b",
        "NwkSKey": "000102030405060708090a0b0c0d0e0f",
        "AppSKey": "0f0e0d0c0b0a09080706050403020100",
        "fcntUp": 0,
        "fcntDown": 0,
        "clusterId": 1,
    }


class TestMapDevice:
    def test_otaa_device(self, mapper, otaa_row):
        device = mapper.map_device(otaa_row)

        assert device.dev_eui == "70B3D57ED0001234"
        assert device.activation_mode == ActivationMode.OTAA
        assert device.lorawan_version == LorawanVersion.V1_0
        assert device.join_eui == "70B3D57ED0000000"
        assert device.rx_window_policy == 1
        assert device.uplink_frame_counter == 12
        assert device.downlink_frame_counter == 42

    def test_abp_class_c_device(self, mapper, abp_row):
        device = mapper.map_device(abp_row)

        assert device.device_class == DeviceClass.C
        assert device.lorawan_version == LorawanVersion.V1_1
        assert device.dev_addr == "00001A2B"
        assert device.network_session_key == "000102030405060708090A0B0C0D0E0F"
        assert device.rx_window_policy == 2
        assert device.downlink_frame_counter == 0

    def test_auto_rx_window(self, mapper, abp_row):
        abp_row["rxWindows"] = "AUTO"
        assert mapper.map_device(abp_row).rx_window_policy == 0

    def test_missing_app_key(self, mapper, otaa_row):
        otaa_row["appKey"] = None
        with pytest.raises(TranslationError):
            mapper.map_device(otaa_row)

    def test_unsupported_class(self, mapper, otaa_row):
        otaa_row["classType"] = "B"
        with pytest.raises(TranslationError, match="unsupported classType"):
            mapper.map_device(otaa_row)


class TestMapPushConfiguration:
    def test_http(self, mapper):
        output = mapper.map_push_configuration(
            {
                "id": 7,
                "type": "HTTP",
                "name": "Backend",
                "msgDetailLevel": "PAYLOAD",
                "url": "https://backend.example.com",
                "httpDataUpRoute": "/up",
                "headers": [{"key": "X-Token", "value": "abc"}],
            },
            hexa=True,
        )

        assert isinstance(output, KerlinkHttpOutput)
        assert output.verbosity == Verbosity.PAYLOAD
        assert output.encoding == Encoding.HEXA
        assert output.dataup_route == "/up"
        assert output.custom_headers[0].key == "X-Token"

    def test_websocket_base64(self, mapper):
        output = mapper.map_push_configuration(
            {"id": 8, "type": "WEBSOCKET", "msgDetailLevel": "RADIO", "url": "wss://ws.example.com"},
            hexa=False,
        )

        assert isinstance(output, KerlinkWebsocketOutput)
        assert output.encoding == Encoding.BASE64
        assert output.verbosity == Verbosity.RADIO

    def test_mqtt_defaults(self, mapper):
        output = mapper.map_push_configuration(
            {
                "id": 9,
                "type": "MQTT",
                "msgDetailLevel": "NETWORK",
                "mqttHost": "broker.example.com",
                "mqttTlsEnabled": True,
            },
            hexa=True,
        )

        assert isinstance(output, KerlinkMqttOutput)
        assert output.port == 1883
        assert output.keepalive == 30
        assert output.tls == 1
        assert output.clean == 0

    def test_mqtt_numeric_looking_text_stays_text(self, mapper):
        output = mapper.map_push_configuration(
            {
                "id": 11,
                "type": "MQTT",
                "msgDetailLevel": "PAYLOAD",
                "mqttHost": "broker.example.com",
                "mqttWillTopic": 42,
                "mqttWillPayload": 0,
                "mqttDataUpTopic": "up",
            },
            hexa=True,
        )

        assert output.will_payload == "0"
        assert output.will_topic == "42"
        request = OutputCreateRequest.from_entity(output)
        assert request.osetup.will_payload == "0"

    def test_http_without_url(self, mapper):
        with pytest.raises(TranslationError, match="url"):
            mapper.map_push_configuration({"id": 7, "type": "HTTP", "msgDetailLevel": "PAYLOAD"}, True)

    def test_mqtt_without_host(self, mapper):
        with pytest.raises(TranslationError, match="mqttHost"):
            mapper.map_push_configuration({"id": 9, "type": "MQTT", "msgDetailLevel": "PAYLOAD"}, True)

    def test_unknown_type(self, mapper):
        with pytest.raises(UnsupportedOutputError):
            mapper.map_push_configuration({"id": 10, "type": "AMQP"}, True)


class TestMapCluster:
    def test_bad_device_does_not_block_siblings(self, mapper, otaa_row, abp_row):
        """Device #2 fails translation, #1 and #3 are still produced."""
        broken = dict(otaa_row, devEui="70b3d57ed0009999", appEui=None)
        third = dict(otaa_row, devEui="70b3d57ed0000003")

        app = mapper.map_cluster(
            {"id": 1, "name": "Farm", "hexa": True},
            devices=[otaa_row, broken, third],
            push_configurations=[],
        )

        assert [d.dev_eui for d in app.devices] == ["70B3D57ED0001234", "70B3D57ED0000003"]

    def test_bad_output_skipped(self, mapper, abp_row):
        app = mapper.map_cluster(
            {"id": 1, "name": "Farm", "hexa": False},
            devices=[abp_row],
            push_configurations=[
                {"id": 1, "type": "FTP"},
                {"id": 2, "type": "HTTP", "msgDetailLevel": "PAYLOAD", "url": "https://a.example.com"},
            ],
        )

        assert len(app.outputs) == 1
        assert app.outputs[0].encoding == Encoding.BASE64
        assert len(app.devices) == 1


class TestMapFleet:
    @pytest.fixture
    def gateway_row(self):
        return {
            "eui": "7276ff000b031234",
            "name": "Roof",
            "brandName": "Kerlink",
            "description": "Wirnet iStation",
            "eth0MAC": "7276ff000b03",
            "latitude": 48.85,
            "longitude": 2.35,
            "region": "EU868",
            "fleetId": 3,
        }

    def test_gateway(self, mapper, gateway_row):
        gateway = mapper.map_gateway(gateway_row, network_name="Paris")

        assert gateway.mac_address == "72:76:FF:00:0B:03"
        assert gateway.hardware_profile.model == "istation"
        assert gateway.region == "EU863-870"
        assert gateway.custom_identifier == "7276FF000B031234"
        assert gateway.location.lat == 48.85

    def test_unmapped_region_omitted(self, mapper, gateway_row):
        gateway_row["region"] = "XX000"
        assert mapper.map_gateway(gateway_row).region is None

    def test_unknown_model_skipped(self, mapper, gateway_row):
        unknown = dict(gateway_row, eui="aa", brandName="Other", description="Unknown")

        network = mapper.map_fleet({"id": 3, "name": "Paris"}, gateways=[gateway_row, unknown])

        assert network.name == "Paris"
        assert len(network.gateways) == 1
