"""ChirpStack record mapper.

Transforms ChirpStack v4 protobuf messages into domain entities. The gRPC
reader gathers the messages; this module only reads their fields.
"""

import logging
from typing import Any, Optional

from chirpstack_api import common

from ...api.exceptions import TranslationError
from ..domain.entities import (
    ActivationMode,
    CustomHeader,
    Device,
    DeviceClass,
    Gateway,
    HttpPushOutput,
)
from . import lorawan_rules as rules

logger = logging.getLogger(__name__)


class ChirpstackMapper:
    """Maps ChirpStack API messages to domain entities.

    Attributes:
        region: Source region applied to every gateway (ChirpStack v4 does
            not report it per gateway)
    """

    def __init__(self, region: Optional[str] = "EU868"):
        self.region = rules.translate_region(region)
        if region and self.region is None:
            logger.warning(f"[chirpstack] Unmapped region {region}, gateway region omitted")

    def map_device(
        self,
        device: Any,
        activation: Optional[Any],
        keys: Optional[Any],
        profile: Any,
    ) -> Device:
        """Join a device with its activation, keys and profile.

        ``activation`` is None for OTAA devices that never joined and
        ``keys`` is None for ABP devices.

        Raises:
            TranslationError: If the joined record violates a LoRaWAN rule
        """
        device_class = DeviceClass.C if profile.supports_class_c else DeviceClass.A
        activation_mode = ActivationMode.OTAA if profile.supports_otaa else ActivationMode.ABP

        try:
            mac_version = common.MacVersion.Name(profile.mac_version)
        except ValueError as e:
            raise TranslationError(
                f"Unknown MAC version {profile.mac_version}",
                entity="device",
                key=device.dev_eui,
                cause=e,
            )

        # LoRaWAN 1.0.x devices keep their AppKey in the nwk_key slot.
        root_key = None
        if keys is not None:
            root_key = keys.nwk_key or keys.app_key or None

        return rules.build_device(
            dev_eui=device.dev_eui,
            name=device.name,
            device_class=device_class,
            lorawan_version=rules.parse_lorawan_version(mac_version),
            activation_mode=activation_mode,
            app_key=root_key,
            join_eui=device.join_eui or None,
            dev_addr=activation.dev_addr if activation is not None else None,
            network_session_key=activation.nwk_s_enc_key if activation is not None else None,
            app_session_key=activation.app_s_key if activation is not None else None,
            adr_enabled=True,
            rx_window=rules.rx_window_policy(None, device_class),
            rx1_delay=1,
            uplink_frame_counter=activation.f_cnt_up if activation is not None else 0,
            # n_f_cnt_down already is the next counter to use.
            downlink_frame_counter=activation.n_f_cnt_down if activation is not None else 0,
        )

    def map_http_integration(self, integration: Any) -> HttpPushOutput:
        if rules.is_blank(integration.event_endpoint_url):
            raise TranslationError("Missing 'event_endpoint_url'", entity="output", key="HTTP")
        return HttpPushOutput(
            name="HTTP",
            url=integration.event_endpoint_url,
            custom_headers=tuple(
                CustomHeader(key=k, value=v) for k, v in sorted(integration.headers.items())
            ),
        )

    def map_gateway(self, gateway: Any) -> Gateway:
        """Translate a gateway list item.

        The MAC is derived from the gateway EUI-64 and every gateway gets
        the Basics Station hardware profile.
        """
        if gateway.HasField("location"):
            location = rules.gateway_location(gateway.location.latitude, gateway.location.longitude)
        else:
            location = rules.DEFAULT_LOCATION

        eui = rules.normalize_hex(gateway.gateway_id, rules.DEV_EUI_WIDTH, "gateway_id")

        return Gateway(
            title=gateway.name or eui,
            notes=gateway.description or None,
            custom_identifier=eui,
            mac_address=rules.mac_from_eui64(eui),
            region=self.region,
            location=location,
            hardware_profile=rules.BASICS_STATION_PROFILE,
        )
