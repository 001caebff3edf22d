"""Domain entities for migration operations.

These are pure data structures with no infrastructure dependencies. Source
readers build them, the sync use cases consume them. Every entity is frozen:
once a record has been translated it is never mutated again.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Union


class DeviceClass(str, Enum):
    A = "A"
    C = "C"


class LorawanVersion(str, Enum):
    """Protocol generation expected by the destination."""

    V1_0 = "v1.0"
    V1_1 = "v1.1"


class ActivationMode(str, Enum):
    OTAA = "OTAA"
    ABP = "ABP"


class OutputType(str, Enum):
    """Destination output adapter names."""

    HTTP_PUSH = "httppush"
    KERLINK_HTTP = "kerlink_http"
    KERLINK_WEBSOCKET = "kerlink_websocket"
    KERLINK_MQTT = "kerlink_mqtt"


class Verbosity(str, Enum):
    PAYLOAD = "Payload"
    RADIO = "Radio"
    NETWORK = "Network"


class Encoding(str, Enum):
    HEXA = "HEXA"
    BASE64 = "BASE64"


# ============================================
# Applications and Devices
# ============================================


@dataclass(frozen=True)
class Device:
    """A LoRaWAN end device ready to be created on the destination.

    Hex fields are already padded and upper-cased. The activation invariant
    (OTAA needs join_eui + app_key, ABP needs dev_addr + network_session_key)
    is enforced by lorawan_rules.build_device before an instance exists.
    """

    title: str
    dev_eui: str
    device_class: DeviceClass
    lorawan_version: LorawanVersion
    activation_mode: ActivationMode
    description: str | None = None
    app_key: str | None = None
    join_eui: str | None = None
    dev_addr: str | None = None
    network_session_key: str | None = None
    app_session_key: str | None = None
    adr_enabled: bool = True
    rx_window_policy: int = 1
    rx1_delay: int = 1
    uplink_frame_counter: int = 0
    downlink_frame_counter: int = 0

    @property
    def is_otaa(self) -> bool:
        return self.activation_mode == ActivationMode.OTAA


@dataclass(frozen=True)
class CustomHeader:
    key: str
    value: str


@dataclass(frozen=True)
class HttpPushOutput:
    """Plain HTTP push output (ChirpStack HTTP integration)."""

    output_type: ClassVar[OutputType] = OutputType.HTTP_PUSH

    name: str
    url: str
    custom_headers: tuple[CustomHeader, ...] = ()


@dataclass(frozen=True)
class KerlinkHttpOutput:
    output_type: ClassVar[OutputType] = OutputType.KERLINK_HTTP

    name: str | None
    verbosity: Verbosity
    encoding: Encoding
    url: str
    user: str | None = None
    password: str | None = None
    dataup_route: str | None = None
    datadownevent_route: str | None = None
    custom_headers: tuple[CustomHeader, ...] = ()


@dataclass(frozen=True)
class KerlinkWebsocketOutput:
    output_type: ClassVar[OutputType] = OutputType.KERLINK_WEBSOCKET

    name: str | None
    verbosity: Verbosity
    encoding: Encoding
    url: str
    user: str | None = None
    password: str | None = None
    custom_headers: tuple[CustomHeader, ...] = ()


@dataclass(frozen=True)
class KerlinkMqttOutput:
    output_type: ClassVar[OutputType] = OutputType.KERLINK_MQTT

    name: str | None
    verbosity: Verbosity
    encoding: Encoding
    host: str
    port: int = 1883
    clientid: str | None = None
    timeout: int = 30
    keepalive: int = 30
    tls: int = 0
    clean: int = 0
    user: str | None = None
    password: str | None = None
    dataup_topic: str | None = None
    datadownevent_topic: str | None = None
    qos: int = 0
    will_topic: str | None = None
    will_payload: str | None = None
    will_qos: int | None = None


Output = Union[HttpPushOutput, KerlinkHttpOutput, KerlinkWebsocketOutput, KerlinkMqttOutput]


@dataclass(frozen=True)
class Application:
    """Destination application: the grouping container for devices and outputs."""

    name: str
    outputs: tuple[Output, ...] = ()
    devices: tuple[Device, ...] = ()

    @property
    def capacity(self) -> int:
        """Device capacity requested on creation (never below 1)."""
        return max(1, len(self.devices))


# ============================================
# Networks and Gateways
# ============================================


@dataclass(frozen=True)
class Location:
    lat: float
    lon: float


@dataclass(frozen=True)
class HardwareProfile:
    base: str
    bus: str
    card: str
    concentrator: str
    model: str


@dataclass(frozen=True)
class Gateway:
    """A LoRaWAN gateway.

    mac_address is always six colon-separated upper-case octets.
    """

    title: str
    mac_address: str
    location: Location
    hardware_profile: HardwareProfile
    notes: str | None = None
    custom_identifier: str | None = None
    region: str | None = None


@dataclass(frozen=True)
class Network:
    """Destination network: the grouping container for gateways."""

    name: str
    gateways: tuple[Gateway, ...] = ()


# ============================================
# Destination read-back
# ============================================


@dataclass(frozen=True)
class RemoteResource:
    """A resource already present on the destination.

    ``id`` is the destination identifier as upper-case hex, ``key`` the
    natural key used for matching (application title, network name,
    DevEUI or gateway MAC).
    """

    id: str
    key: str


# ============================================
# Results
# ============================================


@dataclass
class SyncResult:
    """Result of one migration phase (import or clean).

    Counters are per resource kind so the run report can tell apart
    e.g. a reused application from a created one.
    """

    phase: str
    started_at: datetime
    created: dict[str, int] = field(default_factory=dict)
    reused: dict[str, int] = field(default_factory=dict)
    deleted: dict[str, int] = field(default_factory=dict)
    failed: dict[str, int] = field(default_factory=dict)
    error_details: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not any(self.failed.values())

    @property
    def errors(self) -> int:
        return sum(self.failed.values())

    def record(self, counter: str, kind: str, amount: int = 1) -> None:
        """Increment ``counter`` ("created", "reused", "deleted", "failed") for ``kind``."""
        bucket: dict[str, int] = getattr(self, counter)
        bucket[kind] = bucket.get(kind, 0) + amount

    def add_error(self, kind: str, message: str) -> None:
        self.record("failed", kind)
        self.error_details.append(message)

    def merge(self, other: "SyncResult") -> None:
        """Fold another result of the same phase into this one."""
        for counter in ("created", "reused", "deleted", "failed"):
            for kind, amount in getattr(other, counter).items():
                self.record(counter, kind, amount)
        self.error_details.extend(other.error_details)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        data["success"] = self.success
        data["errors"] = self.errors
        return data
