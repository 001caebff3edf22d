"""
Pydantic schemas for destination request bodies.

Each domain entity is rendered into the JSON body the network server expects.
Optional fields left unset are dropped from the body (``exclude_none``).
"""

from __future__ import annotations

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field

from ..domain.entities import (
    Application,
    CustomHeader,
    Device,
    Gateway,
    HttpPushOutput,
    KerlinkHttpOutput,
    KerlinkMqttOutput,
    KerlinkWebsocketOutput,
    Network,
    Output,
)


# =============================================================================
# Applications
# =============================================================================


class ApplicationCreateRequest(BaseModel):
    title: str
    capacity: int = Field(..., ge=1)
    visibility: Literal["private"] = "private"
    mcastdevlimit: int = 0

    @classmethod
    def from_entity(cls, app: Application) -> "ApplicationCreateRequest":
        return cls(title=app.name, capacity=app.capacity)


# =============================================================================
# Outputs
# =============================================================================


class HeaderSchema(BaseModel):
    key: str
    value: str


class HttpPushSetup(BaseModel):
    name: Optional[str] = None
    url: str
    custom_headers: Optional[list[HeaderSchema]] = None


class KerlinkHttpSetup(BaseModel):
    name: Optional[str] = None
    verbosity: str
    encoding: str
    url: str
    user: Optional[str] = None
    password: Optional[str] = None
    dataup_route: Optional[str] = None
    datadownevent_route: Optional[str] = None
    custom_headers: Optional[list[HeaderSchema]] = None


class KerlinkWebsocketSetup(BaseModel):
    name: Optional[str] = None
    verbosity: str
    encoding: str
    url: str
    user: Optional[str] = None
    password: Optional[str] = None
    custom_headers: Optional[list[HeaderSchema]] = None


class KerlinkMqttSetup(BaseModel):
    name: Optional[str] = None
    verbosity: str
    encoding: str
    host: str
    port: int = 1883
    clientid: Optional[str] = None
    timeout: int = 30
    keepalive: int = 30
    tls: Literal[0, 1] = 0
    clean: Literal[0, 1] = 0
    user: Optional[str] = None
    password: Optional[str] = None
    dataup_topic: Optional[str] = None
    datadownevent_topic: Optional[str] = None
    qos: int = 0
    will_topic: Optional[str] = None
    will_payload: Optional[str] = None
    will_qos: Optional[int] = None


class OutputCreateRequest(BaseModel):
    output: Literal["httppush", "kerlink_http", "kerlink_websocket", "kerlink_mqtt"]
    osetup: Union[HttpPushSetup, KerlinkHttpSetup, KerlinkWebsocketSetup, KerlinkMqttSetup]

    @classmethod
    def from_entity(cls, output: Output) -> "OutputCreateRequest":
        if isinstance(output, HttpPushOutput):
            setup: Any = HttpPushSetup(
                name=output.name,
                url=output.url,
                custom_headers=_headers(output.custom_headers),
            )
        elif isinstance(output, KerlinkHttpOutput):
            setup = KerlinkHttpSetup(
                name=output.name,
                verbosity=output.verbosity.value,
                encoding=output.encoding.value,
                url=output.url,
                user=output.user,
                password=output.password,
                dataup_route=output.dataup_route,
                datadownevent_route=output.datadownevent_route,
                custom_headers=_headers(output.custom_headers),
            )
        elif isinstance(output, KerlinkWebsocketOutput):
            setup = KerlinkWebsocketSetup(
                name=output.name,
                verbosity=output.verbosity.value,
                encoding=output.encoding.value,
                url=output.url,
                user=output.user,
                password=output.password,
                custom_headers=_headers(output.custom_headers),
            )
        elif isinstance(output, KerlinkMqttOutput):
            setup = KerlinkMqttSetup(
                name=output.name,
                verbosity=output.verbosity.value,
                encoding=output.encoding.value,
                host=output.host,
                port=output.port,
                clientid=output.clientid,
                timeout=output.timeout,
                keepalive=output.keepalive,
                tls=output.tls,
                clean=output.clean,
                user=output.user,
                password=output.password,
                dataup_topic=output.dataup_topic,
                datadownevent_topic=output.datadownevent_topic,
                qos=output.qos,
                will_topic=output.will_topic,
                will_payload=output.will_payload,
                will_qos=output.will_qos,
            )
        else:
            raise TypeError(f"Unsupported output {type(output).__name__}")

        return cls(output=output.output_type.value, osetup=setup)


def _headers(headers: tuple[CustomHeader, ...]) -> Optional[list[HeaderSchema]]:
    if not headers:
        return None
    return [HeaderSchema(key=h.key, value=h.value) for h in headers]


# =============================================================================
# Devices
# =============================================================================


class DeviceCreateRequest(BaseModel):
    title: str
    description: Optional[str] = None
    deveui: str
    devclass: Literal["A", "C"]
    devVersion: Literal["v1.0", "v1.1"]
    devActivation: Literal["OTAA", "ABP"]
    appkey: Optional[str] = None
    appeui: Optional[str] = None
    devaddr: Optional[str] = None
    nwkskey: Optional[str] = None
    appskey: Optional[str] = None
    canSendADR: bool = True
    rxw: int = 1
    rx1Delay: int = 1
    seqno: int = 0
    seqdn: int = 0
    seqq: int = 0

    @classmethod
    def from_entity(cls, device: Device) -> "DeviceCreateRequest":
        return cls(
            title=device.title,
            description=device.description,
            deveui=device.dev_eui,
            devclass=device.device_class.value,
            devVersion=device.lorawan_version.value,
            devActivation=device.activation_mode.value,
            appkey=device.app_key,
            appeui=device.join_eui,
            devaddr=device.dev_addr,
            nwkskey=device.network_session_key,
            appskey=device.app_session_key,
            canSendADR=device.adr_enabled,
            rxw=device.rx_window_policy,
            rx1Delay=device.rx1_delay,
            seqno=device.uplink_frame_counter,
            seqdn=device.downlink_frame_counter,
        )


# =============================================================================
# Networks and Gateways
# =============================================================================


class NetworkCreateRequest(BaseModel):
    name: str
    visibility: Literal["private"] = "private"

    @classmethod
    def from_entity(cls, network: Network) -> "NetworkCreateRequest":
        return cls(name=network.name)


class LocationSchema(BaseModel):
    lat: float
    lon: float


class GatewayCreateRequest(BaseModel):
    title: str
    notes: Optional[str] = None
    customEUI: Optional[str] = None
    MAC: str = Field(..., pattern=r"^([0-9A-F]{2}:){5}[0-9A-F]{2}$")
    region: Optional[str] = None
    location: LocationSchema
    base: str
    bus: str
    card: str
    concentrator: str
    model: str

    @classmethod
    def from_entity(cls, gateway: Gateway) -> "GatewayCreateRequest":
        profile = gateway.hardware_profile
        return cls(
            title=gateway.title,
            notes=gateway.notes,
            customEUI=gateway.custom_identifier,
            MAC=gateway.mac_address,
            region=gateway.region,
            location=LocationSchema(lat=gateway.location.lat, lon=gateway.location.lon),
            base=profile.base,
            bus=profile.bus,
            card=profile.card,
            concentrator=profile.concentrator,
            model=profile.model,
        )


def to_body(model: BaseModel) -> dict[str, Any]:
    """Render a request schema as a JSON body without unset optional fields."""
    return model.model_dump(exclude_none=True)
