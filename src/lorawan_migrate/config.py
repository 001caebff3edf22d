"""Runtime configuration.

Settings are read once from the environment (after ``load_dotenv()`` in the
CLI) and passed explicitly to every component; nothing below the
orchestrator reads the environment.

Environment Variables:
    URL                        Destination host, e.g. "eu1.loriot.io" (required)
    AUTH                       Authorization header value (required)
    CHIRPSTACK_URL             ChirpStack gRPC endpoint; selects the gRPC source
    CHIRPSTACK_API_TOKEN       ChirpStack API token
    CHIRPSTACK_TENANT_ID       ChirpStack tenant to migrate
    CHIRPSTACK_REGION          Region of the ChirpStack gateways (default EU868)
    CHIRPSTACK_NETWORK_NAME    Destination network for ChirpStack gateways
    KERLINK_DATA_DIR           Directory of the Kerlink CSV export (default ./data)
    CUSTOMERID                 Only migrate Kerlink fleets of this customer
    CLEAN                      Delete resources about to be re-imported (default false)
    IMPORT                     Import resources (default true)
    MIGRATION_MAX_CONCURRENCY  Applications/networks processed at once (default 1)
    DESTINATION_PAGE_SIZE      perPage used for destination listings (default 100)
    LOG_LEVEL                  Logging level (default INFO)
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

from .api.exceptions import ConfigurationError

TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
FALSE_VALUES = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True)
class ChirpstackSettings:
    url: str
    api_token: str
    tenant_id: str
    region: str = "EU868"
    network_name: str = "Chirpstack"


@dataclass(frozen=True)
class Settings:
    """Configuration of one migration run.

    ``chirpstack`` is None when the Kerlink CSV export is the source.
    """

    destination_url: str
    authorization: str
    chirpstack: Optional[ChirpstackSettings] = None
    data_dir: Path = Path("./data")
    customer_id: Optional[int] = None
    clean: bool = False
    import_resources: bool = True
    max_concurrency: int = 1
    page_size: int = 100
    log_level: str = "INFO"

    @property
    def provider(self) -> str:
        return "chirpstack" if self.chirpstack is not None else "kerlink"

    def with_overrides(self, **changes) -> "Settings":
        """Copy with every non-None keyword applied (CLI flags)."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def parse_bool(name: str, value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    lowered = value.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}", missing_keys=[name])


def parse_int(name: str, value: Optional[str], default: Optional[int], minimum: int = 0) -> Optional[int]:
    if value is None or value.strip() == "":
        return default
    try:
        number = int(value.strip())
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}", missing_keys=[name])
    if number < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {number}", missing_keys=[name])
    return number


def destination_base_url(host: str) -> str:
    """Prefix a bare host with https://."""
    host = host.strip().rstrip("/")
    if "://" in host:
        return host
    return f"https://{host}"


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from environment variables.

    Raises:
        ConfigurationError: If a required variable is missing or a value
            cannot be parsed
    """
    env = os.environ if env is None else env

    missing = [key for key in ("URL", "AUTH") if not env.get(key, "").strip()]
    if missing:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}",
            missing_keys=missing,
        )

    chirpstack = None
    if env.get("CHIRPSTACK_URL", "").strip():
        missing = [
            key for key in ("CHIRPSTACK_API_TOKEN", "CHIRPSTACK_TENANT_ID")
            if not env.get(key, "").strip()
        ]
        if missing:
            raise ConfigurationError(
                f"CHIRPSTACK_URL is set but {', '.join(missing)} missing",
                missing_keys=missing,
            )
        chirpstack = ChirpstackSettings(
            url=env["CHIRPSTACK_URL"].strip(),
            api_token=env["CHIRPSTACK_API_TOKEN"].strip(),
            tenant_id=env["CHIRPSTACK_TENANT_ID"].strip(),
            region=env.get("CHIRPSTACK_REGION", "").strip() or "EU868",
            network_name=env.get("CHIRPSTACK_NETWORK_NAME", "").strip() or "Chirpstack",
        )

    return Settings(
        destination_url=destination_base_url(env["URL"]),
        authorization=env["AUTH"].strip(),
        chirpstack=chirpstack,
        data_dir=Path(env.get("KERLINK_DATA_DIR", "").strip() or "./data"),
        customer_id=parse_int("CUSTOMERID", env.get("CUSTOMERID"), None),
        clean=parse_bool("CLEAN", env.get("CLEAN"), False),
        import_resources=parse_bool("IMPORT", env.get("IMPORT"), True),
        max_concurrency=parse_int(
            "MIGRATION_MAX_CONCURRENCY", env.get("MIGRATION_MAX_CONCURRENCY"), 1, minimum=1
        ),
        page_size=parse_int("DESTINATION_PAGE_SIZE", env.get("DESTINATION_PAGE_SIZE"), 100, minimum=1),
        log_level=(env.get("LOG_LEVEL", "").strip() or "INFO").upper(),
    )
