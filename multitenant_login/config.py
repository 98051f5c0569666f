"""
Login redirector configuration. Values come from the bundled multitenant.properties (key=value, # comments),
read once and published as an immutable LoginConfig.
"""
import logging
import threading
from dataclasses import dataclass
from io import StringIO
from pathlib import Path
from typing import Mapping
from urllib.parse import quote, urlsplit

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

# Properties resource shipped next to the package modules
BUNDLED_PROPERTIES_PATH = Path(__file__).resolve().parent / "multitenant.properties"

DEFAULT_PROPERTIES_PATH = BUNDLED_PROPERTIES_PATH

KEY_AUTHORITY = "login.authority"
KEY_CLIENT_ID = "login.clientId"
KEY_REDIRECT = "login.redirect"
KEY_STATE = "login.state"
KEY_RESOURCE = "login.resource"
REQUIRED_KEYS = (KEY_AUTHORITY, KEY_CLIENT_ID, KEY_REDIRECT, KEY_STATE, KEY_RESOURCE)

# Optional flags (off unless set)
KEY_RANDOM_STATE = "login.randomState"
KEY_SECURE_COOKIE = "login.secureCookie"

_TRUE = {"true", "yes", "1"}
_FALSE = {"false", "no", "0"}

# Characters Starlette's RedirectResponse leaves unquoted in a Location URL
_LOCATION_SAFE = ":/%#?=@[]!$&'()*+,;"


class ConfigurationUnavailable(Exception):
    """Properties resource missing, unreadable or malformed."""


class ConfigurationIncomplete(Exception):
    """A required key is missing or empty."""

    def __init__(self, missing_keys: list[str], detail: str | None = None):
        self.missing_keys = missing_keys
        super().__init__(detail or f"Missing required configuration: {', '.join(missing_keys)}")


def _parse_flag(mapping: Mapping[str, str | None], key: str) -> bool:
    raw = (mapping.get(key) or "").strip().lower()
    if not raw:
        return False
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise ConfigurationUnavailable(f"{key} must be true or false, got {mapping[key]!r}")


def _check_encodable(mapping: Mapping[str, str]) -> None:
    for key in REQUIRED_KEYS:
        try:
            mapping[key].encode("utf-8")
        except UnicodeEncodeError as e:
            raise ConfigurationUnavailable(f"{key} is not valid UTF-8 text") from e


def _check_authority(authority: str) -> None:
    """Absolute http(s) URL that goes into Location unchanged."""
    if authority.endswith("/"):
        raise ConfigurationIncomplete(
            [KEY_AUTHORITY], f"{KEY_AUTHORITY} must not end with '/': {authority}"
        )
    parts = urlsplit(authority)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ConfigurationUnavailable(f"{KEY_AUTHORITY} must be an absolute http(s) URL: {authority}")
    if quote(authority, safe=_LOCATION_SAFE) != authority:
        raise ConfigurationUnavailable(f"{KEY_AUTHORITY} contains characters that need escaping: {authority}")


@dataclass(frozen=True)
class LoginConfig:
    authority: str
    client_id: str
    redirect: str
    state: str
    resource: str
    random_state: bool = False
    secure_cookie: bool = False

    @classmethod
    def from_properties(cls, mapping: Mapping[str, str | None]) -> "LoginConfig":
        """
        Build from parsed properties. All five login.* keys must be non-empty;
        authority must be an absolute URL not ending with '/' since the authorize path is appended as-is.
        """
        missing = [k for k in REQUIRED_KEYS if not mapping.get(k)]
        if missing:
            raise ConfigurationIncomplete(missing)
        _check_encodable(mapping)
        authority = mapping[KEY_AUTHORITY]
        _check_authority(authority)
        return cls(
            authority=authority,
            client_id=mapping[KEY_CLIENT_ID],
            redirect=mapping[KEY_REDIRECT],
            state=mapping[KEY_STATE],
            resource=mapping[KEY_RESOURCE],
            random_state=_parse_flag(mapping, KEY_RANDOM_STATE),
            secure_cookie=_parse_flag(mapping, KEY_SECURE_COOKIE),
        )


def _read_resource(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def parse_properties(text: str) -> dict[str, str | None]:
    """key=value lines via python-dotenv; no ${VAR} interpolation. Raises ConfigurationUnavailable if nothing parses."""
    mapping = dotenv_values(stream=StringIO(text), interpolate=False)
    if not mapping:
        raise ConfigurationUnavailable("No key=value entries found")
    return dict(mapping)


class ConfigLoader:
    """
    One-shot loader. The first successful load() reads the resource and caches the result;
    later calls return the cached LoginConfig without touching the file. A failed load caches nothing.
    """

    def __init__(self, source: Path | str | None = None):
        self.source = Path(source) if source is not None else DEFAULT_PROPERTIES_PATH
        self._config: LoginConfig | None = None
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._config is not None

    def load(self) -> LoginConfig:
        with self._lock:
            if self._config is not None:
                return self._config
            try:
                text = _read_resource(self.source)
            except (OSError, UnicodeDecodeError) as e:
                raise ConfigurationUnavailable(f"Cannot read {self.source}: {e}") from e
            try:
                mapping = parse_properties(text)
            except ConfigurationUnavailable as e:
                raise ConfigurationUnavailable(f"Malformed {self.source}: {e}") from e
            config = LoginConfig.from_properties(mapping)
            logger.info("Loaded login configuration from %s", self.source)
            print(f"authority: {config.authority}")
            self._config = config
        return config
