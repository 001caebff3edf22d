"""Kerlink WMC record mapper.

Transforms coerced CSV rows (clusters, push configurations, devices, fleets,
gateways) into Application / Network entities. Field names of the WMC export
stop here; nothing past this module knows about ``NwkSKey`` or ``eth0MAC``.
"""

import logging
from typing import Any, Iterable

from ...api.exceptions import TranslationError, UnsupportedOutputError
from ..domain.entities import (
    Application,
    CustomHeader,
    Device,
    Gateway,
    KerlinkHttpOutput,
    KerlinkMqttOutput,
    KerlinkWebsocketOutput,
    Network,
    Output,
)
from . import lorawan_rules as rules

logger = logging.getLogger(__name__)

PROVIDER = "kerlink"


class KerlinkMapper:
    """Maps Kerlink WMC export rows to domain entities.

    Every device, push configuration and gateway is translated on its own:
    a TranslationError is logged with the record's natural key and the
    record is skipped.
    """

    # ----------------------------------------
    # Applications
    # ----------------------------------------

    def map_cluster(
        self,
        cluster: dict[str, Any],
        devices: Iterable[dict[str, Any]],
        push_configurations: Iterable[dict[str, Any]],
    ) -> Application:
        name = str(cluster.get("name") or f"Cluster {cluster.get('id')}")
        hexa = bool(cluster.get("hexa", True))

        outputs: list[Output] = []
        for push_configuration in push_configurations:
            try:
                outputs.append(self.map_push_configuration(push_configuration, hexa))
            except TranslationError as e:
                logger.warning(
                    f"[{PROVIDER}][{name}][OUT][{push_configuration.get('id')}] "
                    f"Unable to translate push configuration \"{push_configuration.get('name')}\": {e.message}"
                )

        translated: list[Device] = []
        for row in devices:
            try:
                translated.append(self.map_device(row))
            except TranslationError as e:
                logger.warning(
                    f"[{PROVIDER}][{name}][DEV][{row.get('devEui')}] Unable to translate device: {e.message}"
                )

        return Application(name=name, outputs=tuple(outputs), devices=tuple(translated))

    def map_push_configuration(self, row: dict[str, Any], hexa: bool) -> Output:
        """Translate one push configuration into its destination output variant.

        Raises:
            TranslationError: If a required field (url / mqttHost) is missing
            UnsupportedOutputError: If the push configuration type is unknown
        """
        push_type = str(row.get("type") or "").upper()
        key = str(row.get("id"))

        if push_type not in ("HTTP", "WEBSOCKET", "MQTT"):
            raise UnsupportedOutputError(row.get("type"), key=key)

        verbosity = rules.translate_verbosity(row.get("msgDetailLevel"))
        encoding = rules.encoding_for(hexa)
        headers = self._custom_headers(row.get("headers"))

        if push_type == "HTTP":
            if rules.is_blank(row.get("url")):
                raise TranslationError("Missing 'url'", entity="output", key=key)
            return KerlinkHttpOutput(
                name=rules.optional_text(row.get("name")),
                verbosity=verbosity,
                encoding=encoding,
                url=str(row["url"]),
                user=rules.optional_text(row.get("user")),
                password=rules.optional_text(row.get("password")),
                dataup_route=rules.optional_text(row.get("httpDataUpRoute")),
                datadownevent_route=rules.optional_text(row.get("httpDataDownEventRoute")),
                custom_headers=headers,
            )

        if push_type == "WEBSOCKET":
            if rules.is_blank(row.get("url")):
                raise TranslationError("Missing 'url'", entity="output", key=key)
            return KerlinkWebsocketOutput(
                name=rules.optional_text(row.get("name")),
                verbosity=verbosity,
                encoding=encoding,
                url=str(row["url"]),
                user=rules.optional_text(row.get("user")),
                password=rules.optional_text(row.get("password")),
                custom_headers=headers,
            )

        if rules.is_blank(row.get("mqttHost")):
            raise TranslationError("Missing 'mqttHost'", entity="output", key=key)
        return KerlinkMqttOutput(
            name=rules.optional_text(row.get("name")),
            verbosity=verbosity,
            encoding=encoding,
            host=str(row["mqttHost"]),
            port=int(row.get("mqttPort") or 1883),
            clientid=rules.optional_text(row.get("mqttClientId")),
            timeout=int(row.get("mqttConnectionTimeout") or 30),
            keepalive=int(row.get("mqttKeepAlive") or 30),
            tls=1 if row.get("mqttTlsEnabled") else 0,
            clean=1 if row.get("mqttCleanSession") else 0,
            user=rules.optional_text(row.get("user")),
            password=rules.optional_text(row.get("password")),
            dataup_topic=rules.optional_text(row.get("mqttDataUpTopic")),
            datadownevent_topic=rules.optional_text(row.get("mqttDataDownEventTopic")),
            qos=int(row.get("mqttQoS") or 0),
            will_topic=rules.optional_text(row.get("mqttWillTopic")),
            will_payload=rules.optional_text(row.get("mqttWillPayload")),
            will_qos=row.get("mqttWillQoS"),
        )

    @staticmethod
    def _custom_headers(raw: Any) -> tuple[CustomHeader, ...]:
        if not raw:
            return ()
        if isinstance(raw, dict):
            raw = [{"key": k, "value": v} for k, v in raw.items()]
        return tuple(
            CustomHeader(key=str(h["key"]), value=str(h.get("value", "")))
            for h in raw
            if isinstance(h, dict) and h.get("key")
        )

    def map_device(self, row: dict[str, Any]) -> Device:
        """Translate one WMC device row.

        Raises:
            TranslationError: If the row violates a LoRaWAN rule
        """
        try:
            device_class = rules.parse_device_class(row.get("classType"))
            return rules.build_device(
                dev_eui=row.get("devEui"),
                name=rules.optional_text(row.get("name")),
                device_class=device_class,
                lorawan_version=rules.parse_lorawan_version(row.get("macVersion")),
                activation_mode=rules.parse_activation_mode(row.get("activation")),
                app_key=row.get("appKey"),
                join_eui=row.get("appEui"),
                dev_addr=row.get("dev_addr"),
                network_session_key=row.get("NwkSKey"),
                app_session_key=row.get("AppSKey"),
                adr_enabled=row.get("adrEnabled"),
                rx_window=rules.rx_window_policy(row.get("rxWindows"), device_class),
                rx1_delay=row.get("rx1Delay"),
                uplink_frame_counter=row.get("fcntUp"),
                downlink_frame_counter=rules.next_downlink_counter(row.get("fcntDown")),
            )
        except (TypeError, ValueError) as e:
            raise TranslationError(str(e), entity="device", key=row.get("devEui"), cause=e)

    # ----------------------------------------
    # Networks
    # ----------------------------------------

    def map_fleet(self, fleet: dict[str, Any], gateways: Iterable[dict[str, Any]]) -> Network:
        name = str(fleet.get("name") or f"Fleet {fleet.get('id')}")

        translated: list[Gateway] = []
        for row in gateways:
            try:
                translated.append(self.map_gateway(row, network_name=name))
            except TranslationError as e:
                logger.warning(
                    f"[{PROVIDER}][{name}][GW][{row.get('eui')}] Unable to translate gateway: {e.message}"
                )

        return Network(name=name, gateways=tuple(translated))

    def map_gateway(self, row: dict[str, Any], network_name: str = "") -> Gateway:
        """Translate one WMC gateway row.

        Raises:
            TranslationError: If the MAC is invalid or the model is unknown
        """
        profile = rules.infer_hardware_profile(row.get("brandName"), row.get("description"))
        mac = rules.normalize_mac(row.get("eth0MAC"))

        region = None
        if not rules.is_blank(row.get("region")):
            region = rules.translate_region(row["region"])
            if region is None:
                logger.warning(
                    f"[{PROVIDER}][{network_name}][GW][{row.get('eui')}] "
                    f"Unmapped region {row['region']}, region omitted"
                )

        eui = None if rules.is_blank(row.get("eui")) else str(row["eui"]).upper()
        title = row.get("name") if not rules.is_blank(row.get("name")) else (eui or mac)

        return Gateway(
            title=str(title),
            mac_address=mac,
            location=rules.gateway_location(row.get("latitude"), row.get("longitude")),
            hardware_profile=profile,
            custom_identifier=eui,
            region=region,
        )
