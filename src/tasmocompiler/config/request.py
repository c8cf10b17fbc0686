"""
Typed build request model.

A build request arrives as a JSON-like mapping::

    {
        "network": {"STA_SSID1": "home", "WIFI_IP_ADDRESS": "0.0.0.0"},
        "features": {
            "USE_DISCOVERY": true,
            "platformio_entries#sensors": {"build_flags": "-DUSE_BME680"},
            "board": {
                "name": "esp32dev",
                "defines": {"USE_ADC": true},
                "platformio_entries": {"board": "esp32dev"}
            }
        },
        "version": {"tasmotaVersion": "development", "MY_LANGUAGE": "en_GB"},
        "customParams": "#define USE_SUNRISE"
    }

Each symbol is turned into a :class:`DefineField` carrying an explicit
:class:`EmitRule`, so the rest of the code never has to look at the shape or
spelling of the raw value again.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from ..errors import RequestError

# Symbols whose values are C string literals
QUOTED_SYMBOLS = frozenset(
    {
        "STA_PASS1",
        "STA_SSID1",
        "WIFI_DNS",
        "WIFI_GATEWAY",
        "WIFI_IP_ADDRESS",
        "WIFI_SUBNETMASK",
    }
)

PLATFORMIO_ENTRIES_PREFIX = "platformio_entries#"
VERSION_KEY = "tasmotaVersion"


class EmitRule(Enum):
    """How a single symbol is written to the override header."""

    SKIP = "skip"
    DEFINE = "define"
    UNDEFINE = "undefine"
    QUOTED = "quoted"
    BARE = "bare"


@dataclass(frozen=True)
class DefineField:
    """A configuration symbol together with its emission rule.

    Attributes:
        name: Preprocessor symbol name
        value: Value to emit (only meaningful for QUOTED and BARE)
        rule: Emission rule
    """

    name: str
    value: Any
    rule: EmitRule

    @classmethod
    def from_entry(cls, name: str, raw: Any) -> "DefineField":
        """Classify a raw configuration entry.

        Keys starting with an uppercase letter are preprocessor symbols; all
        others are helper fields. A value may be wrapped as
        ``{"value": v, "quoted": bool, "emit": bool}`` to tag it explicitly.
        """
        if not name or not name[0].isupper():
            return cls(name, raw, EmitRule.SKIP)

        quoted: Optional[bool] = None
        value = raw
        if isinstance(raw, Mapping):
            if "value" not in raw:
                # Nested helper data, nothing to define
                return cls(name, raw, EmitRule.SKIP)
            if raw.get("emit") is False:
                return cls(name, raw.get("value"), EmitRule.SKIP)
            value = raw["value"]
            quoted = raw.get("quoted")

        if value is True:
            return cls(name, value, EmitRule.DEFINE)
        if value is False:
            return cls(name, value, EmitRule.UNDEFINE)
        if value is None or value == "":
            return cls(name, value, EmitRule.SKIP)

        if quoted is None:
            quoted = name in QUOTED_SYMBOLS
        return cls(name, value, EmitRule.QUOTED if quoted else EmitRule.BARE)


def classify_fields(mapping: Mapping[str, Any]) -> List[DefineField]:
    """Classify every entry of a mapping, keeping the mapping's key order."""
    return [DefineField.from_entry(name, raw) for name, raw in mapping.items()]


def _require_mapping(data: Any, what: str) -> Dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise RequestError(f"'{what}' must be an object, got {type(data).__name__}")
    return dict(data)


@dataclass
class BoardDefinition:
    """Board selected in the feature configuration.

    Attributes:
        name: Board name (e.g. 'esp32dev', 'esp8266')
        defines: Board-specific symbols, emitted like features
        platformio_entries: Build tool settings for the firmware environment
    """

    name: str = ""
    defines: Dict[str, Any] = field(default_factory=dict)
    platformio_entries: Dict[str, str] = field(default_factory=dict)

    @property
    def is_esp32(self) -> bool:
        return "esp32" in self.name

    @classmethod
    def from_dict(cls, data: Any) -> "BoardDefinition":
        data = _require_mapping(data, "features.board")
        entries = _require_mapping(data.get("platformio_entries"), "features.board.platformio_entries")
        return cls(
            name=str(data.get("name") or ""),
            defines=_require_mapping(data.get("defines"), "features.board.defines"),
            platformio_entries={key: str(value) for key, value in entries.items()},
        )


@dataclass
class BuildRequest:
    """Client -> orchestrator: everything needed to configure one build.

    Attributes:
        network: Network symbols (SSID, static IP, ...)
        features: Feature symbols, the board and platformio_entries#* helpers
        version: Version symbols; ``tasmotaVersion`` selects the checkout
        custom_params: Text appended verbatim to the override header
    """

    network: Dict[str, Any] = field(default_factory=dict)
    features: Dict[str, Any] = field(default_factory=dict)
    version: Dict[str, Any] = field(default_factory=dict)
    custom_params: str = ""

    @property
    def board(self) -> BoardDefinition:
        return BoardDefinition.from_dict(self.features.get("board"))

    @property
    def version_identifier(self) -> Optional[str]:
        """Branch or tag to check out, None when the request does not name one."""
        value = self.version.get(VERSION_KEY)
        if value is None or value == "":
            return None
        return str(value)

    @classmethod
    def from_dict(cls, data: Any) -> "BuildRequest":
        """Create BuildRequest from a decoded JSON object.

        Raises:
            RequestError: If a section has the wrong shape
        """
        data = _require_mapping(data, "request")
        custom_params = data.get("customParams")
        if custom_params is None:
            custom_params = ""
        if not isinstance(custom_params, str):
            raise RequestError("'customParams' must be a string")

        request = cls(
            network=_require_mapping(data.get("network"), "network"),
            features=_require_mapping(data.get("features"), "features"),
            version=_require_mapping(data.get("version"), "version"),
            custom_params=custom_params,
        )
        # Validate the board shape up front
        BoardDefinition.from_dict(request.features.get("board"))
        return request
