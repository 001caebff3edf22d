"""LoRaWAN business rules shared by every source mapper.

Pure functions, no I/O beyond a warning log. Each one either returns a normalized value or raises
TranslationError; the mappers catch that error per entity so that one bad
record never stops its siblings.
"""

import logging
import re
from typing import Any, Optional

from ...api.exceptions import TranslationError, UnknownGatewayModelError
from ..domain.entities import (
    ActivationMode,
    Device,
    DeviceClass,
    Encoding,
    HardwareProfile,
    Location,
    LorawanVersion,
    Verbosity,
)

logger = logging.getLogger(__name__)

# ============================================
# Constants
# ============================================

MAX_TITLE_LENGTH = 50

DEV_EUI_WIDTH = 16
DEV_ADDR_WIDTH = 8
JOIN_EUI_WIDTH = 16
KEY_WIDTH = 32

DEFAULT_LOCATION = Location(lat=46.8076885, lon=7.100528)

# Source region identifier -> destination channel plan
REGION_TABLE: dict[str, str] = {
    "AS923": "AS923",
    "AU915": "AU915-928",
    "CN470": "CN470-510",
    "EU433": "EU433",
    "CN779": "CN779-787",
    "IN865": "IN865-867",
    "EU868": "EU863-870",
    "KR920": "KR920-923",
    "RU864": "RU864-870",
    "US915": "US902-928",
}

# Ordered: the first (brand, pattern) that matches wins.
HARDWARE_PROFILES: list[tuple[str, re.Pattern, HardwareProfile]] = [
    (
        "KERLINK",
        re.compile(r"iFemtoCell"),
        HardwareProfile(base="kerlink", bus="SPI", card="", concentrator="kerlink_femtocell", model="evolution"),
    ),
    (
        "KERLINK",
        re.compile(r"iStation"),
        HardwareProfile(base="kerlink", bus="SPI", card="", concentrator="kerlink_femtocell", model="istation"),
    ),
    (
        "KERLINK",
        re.compile(r"iBts"),
        HardwareProfile(base="kerlink", bus="SPI", card="", concentrator="kerlink_ibts_v2_61", model="ibts"),
    ),
]

BASICS_STATION_PROFILE = HardwareProfile(
    base="basics-station",
    bus="SPI",
    card="",
    concentrator="SX130x",
    model="semtech",
)

VERBOSITY_TABLE: dict[str, Verbosity] = {
    "PAYLOAD": Verbosity.PAYLOAD,
    "RADIO": Verbosity.RADIO,
    "NETWORK": Verbosity.NETWORK,
}

_HEX_RE = re.compile(r"^[0-9A-Fa-f]*$")
_VERSION_RE = re.compile(r"(\d+)[._](\d+)(?:[._](\d+))?")


# ============================================
# Scalars
# ============================================


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def optional_text(value: Any) -> Optional[str]:
    """Free-text cell as a string, None when blank.

    >>> optional_text(0)
    '0'
    """
    if is_blank(value):
        return None
    return str(value)


def normalize_hex(value: Any, width: int, field_name: str) -> str:
    """Left-pad a hex string with zeros to ``width`` and upper-case it.

    >>> normalize_hex("1a2b", 8, "dev_addr")
    '00001A2B'
    """
    text = str(value).strip()
    if text.lower().startswith("0x"):
        text = text[2:]
    if not text or not _HEX_RE.match(text):
        raise TranslationError(f"Unable to parse {field_name} {value!r}: not a hex string")
    if len(text) > width:
        raise TranslationError(
            f"Unable to parse {field_name} {value!r}: longer than {width} hex chars"
        )
    return text.zfill(width).upper()


def optional_hex(value: Any, width: int, field_name: str) -> Optional[str]:
    if is_blank(value):
        return None
    return normalize_hex(value, width, field_name)


def parse_lorawan_version(value: Any) -> LorawanVersion:
    """Map a MAC version string to the protocol generation.

    Accepts "1.0.3", "1.0.2rB", "1.1" and enum names such as "LORAWAN_1_0_3".
    Minor version 0 is v1.0, any other minor is v1.1.
    """
    if is_blank(value):
        raise TranslationError("Unable to parse macVersion: value is missing")

    match = _VERSION_RE.search(str(value))
    if not match:
        raise TranslationError(f"Unable to parse macVersion {value!r}")

    minor = int(match.group(2))
    return LorawanVersion.V1_0 if minor == 0 else LorawanVersion.V1_1


def parse_device_class(value: Any) -> DeviceClass:
    text = "" if value is None else str(value).strip().upper()
    if text not in ("A", "C"):
        raise TranslationError(f"unsupported classType: {value}")
    return DeviceClass(text)


def parse_activation_mode(value: Any) -> ActivationMode:
    text = "" if value is None else str(value).strip().upper()
    if text not in ("OTAA", "ABP"):
        raise TranslationError(f"unsupported activation: {value}")
    return ActivationMode(text)


def rx_window_policy(rx_windows: Any, device_class: DeviceClass) -> int:
    """Resolve the RX window the destination should use.

    "AUTO" is 0, an explicit window is kept, and an unset value defaults to
    window 2 for class C and window 1 otherwise.
    """
    if is_blank(rx_windows):
        return 2 if device_class == DeviceClass.C else 1

    if isinstance(rx_windows, str):
        text = rx_windows.strip().upper()
        if text == "AUTO":
            return 0
        if text.isdigit():
            return int(text)
        raise TranslationError(f"Unable to parse rxWindows {rx_windows!r}")

    return int(rx_windows)


def next_downlink_counter(last_used: Any) -> int:
    """Convert the last used downlink counter into the next one to use.

    0 (or unset) means no downlink was ever sent and stays 0.
    """
    if is_blank(last_used):
        return 0
    value = int(last_used)
    return value + 1 if value else 0


def truncate_title(title: str) -> tuple[str, Optional[str]]:
    """Return (title, description); long titles keep their full text as description."""
    if len(title) > MAX_TITLE_LENGTH:
        return title[:MAX_TITLE_LENGTH], title
    return title, None


def translate_region(code: Any) -> Optional[str]:
    """Map a source region to a destination channel plan, None when unmapped."""
    if is_blank(code):
        return None
    return REGION_TABLE.get(str(code).strip().upper())


def translate_verbosity(msg_detail_level: Any) -> Verbosity:
    text = "" if msg_detail_level is None else str(msg_detail_level).strip().upper()
    try:
        return VERBOSITY_TABLE[text]
    except KeyError:
        raise TranslationError(f"unknown msgDetailLevel {msg_detail_level}")


def encoding_for(hexa: bool) -> Encoding:
    return Encoding.HEXA if hexa else Encoding.BASE64


def coordinate(value: Any, default: float) -> float:
    if is_blank(value):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def gateway_location(latitude: Any, longitude: Any) -> Location:
    return Location(
        lat=coordinate(latitude, DEFAULT_LOCATION.lat),
        lon=coordinate(longitude, DEFAULT_LOCATION.lon),
    )


# ============================================
# Gateways
# ============================================


def normalize_mac(value: Any) -> str:
    """Format a MAC address as six colon-separated upper-case octets."""
    text = "" if value is None else re.sub(r"[:\-.\s]", "", str(value))
    if len(text) != 12 or not _HEX_RE.match(text):
        raise TranslationError(f"Invalid MAC address {value!r}")
    text = text.upper()
    return ":".join(text[i:i + 2] for i in range(0, 12, 2))


def mac_from_eui64(eui: Any) -> str:
    """Derive a MAC address from a gateway EUI-64 by dropping its two middle octets.

    >>> mac_from_eui64("0016c0fffe001234")
    '00:16:C0:00:12:34'
    """
    text = normalize_hex(eui, DEV_EUI_WIDTH, "gateway EUI")
    return normalize_mac(text[:6] + text[10:])


def infer_hardware_profile(brand: Any, description: Any) -> HardwareProfile:
    """Select the hardware profile of a gateway from its brand and description."""
    brand_text = "" if brand is None else str(brand).strip().upper()
    description_text = "" if description is None else str(description)

    for profile_brand, pattern, profile in HARDWARE_PROFILES:
        if brand_text == profile_brand and pattern.search(description_text):
            return profile

    raise UnknownGatewayModelError(brand, description)


# ============================================
# Devices
# ============================================


def build_device(
    *,
    dev_eui: Any,
    name: Any,
    device_class: DeviceClass,
    lorawan_version: LorawanVersion,
    activation_mode: ActivationMode,
    app_key: Any = None,
    join_eui: Any = None,
    dev_addr: Any = None,
    network_session_key: Any = None,
    app_session_key: Any = None,
    adr_enabled: Optional[bool] = None,
    rx_window: int = 1,
    rx1_delay: Any = None,
    uplink_frame_counter: Any = None,
    downlink_frame_counter: int = 0,
) -> Device:
    """Validate and normalize one device.

    This is the single place where the activation invariant is enforced:
    OTAA devices need a JoinEUI and an AppKey, ABP devices a DevAddr and a
    network session key. Keys not required by the activation mode are kept
    when present.

    Raises:
        TranslationError: If a mandatory field is missing or malformed
    """
    if is_blank(dev_eui):
        raise TranslationError("devEui is required", entity="device")
    eui = normalize_hex(dev_eui, DEV_EUI_WIDTH, "devEui")

    try:
        addr = optional_hex(dev_addr, DEV_ADDR_WIDTH, "dev_addr")
        nwk_s_key = optional_hex(network_session_key, KEY_WIDTH, "NwkSKey")
        app_s_key = optional_hex(app_session_key, KEY_WIDTH, "AppSKey")
        join = optional_hex(join_eui, JOIN_EUI_WIDTH, "appEui")
        key = optional_hex(app_key, KEY_WIDTH, "appKey")
    except TranslationError as e:
        raise TranslationError(e.message, entity="device", key=eui, cause=e)

    if activation_mode == ActivationMode.ABP:
        if addr is None:
            raise TranslationError("dev_addr is required for ABP device", entity="device", key=eui)
        if nwk_s_key is None:
            raise TranslationError("NwkSKey is required for ABP device", entity="device", key=eui)
    else:
        if join is None:
            raise TranslationError("appEui is required for OTAA device", entity="device", key=eui)
        if key is None:
            raise TranslationError("appKey is required for OTAA device", entity="device", key=eui)

    title, description = truncate_title(eui if is_blank(name) else str(name).strip())
    if description is not None:
        logger.warning(f"[{eui}] Title too long: truncated to \"{title}\"")

    return Device(
        title=title,
        description=description,
        dev_eui=eui,
        device_class=device_class,
        lorawan_version=lorawan_version,
        activation_mode=activation_mode,
        app_key=key,
        join_eui=join,
        dev_addr=addr,
        network_session_key=nwk_s_key,
        app_session_key=app_s_key,
        adr_enabled=True if adr_enabled is None else bool(adr_enabled),
        rx_window_policy=rx_window,
        rx1_delay=1 if is_blank(rx1_delay) else int(rx1_delay),
        uplink_frame_counter=0 if is_blank(uplink_frame_counter) else int(uplink_frame_counter),
        downlink_frame_counter=downlink_frame_counter,
    )
