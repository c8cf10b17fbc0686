"""
Unit tests for user_config_override.h rendering.
"""

from tasmocompiler.build.defines import (
    HEADER_WARNING,
    render_defines,
    render_override_header,
)
from tasmocompiler.config import BuildRequest


class TestRenderDefines:
    """Test suite for render_defines."""

    def test_true_defines_without_value(self):
        """Test that a true flag is undefined and redefined without value."""
        blocks = render_defines({"USE_DISCOVERY": True})

        assert blocks == ["#ifdef USE_DISCOVERY\n  #undef USE_DISCOVERY\n#endif\n#define USE_DISCOVERY\n\n"]

    def test_false_only_undefines(self):
        """Test that a false flag produces no define directive."""
        blocks = render_defines({"USE_DOMOTICZ": False})

        assert blocks == ["#ifdef USE_DOMOTICZ\n  #undef USE_DOMOTICZ\n#endif\n\n"]
        assert "#define" not in blocks[0]

    def test_empty_string_is_omitted(self):
        """Test that an empty value produces no output at all."""
        assert render_defines({"MQTT_HOST": ""}) == []

    def test_none_is_omitted(self):
        """Test that a missing value produces no output."""
        assert render_defines({"MQTT_HOST": None}) == []

    def test_bare_value(self):
        """Test that ordinary values are emitted as bare tokens."""
        blocks = render_defines({"MQTT_PORT": 1883})

        assert blocks == ["#ifdef MQTT_PORT\n  #undef MQTT_PORT\n#endif\n#define MQTT_PORT\t1883\n\n"]

    def test_quoted_network_symbols(self):
        """Test that credentials and addresses are emitted as string literals."""
        blocks = render_defines(
            {
                "STA_SSID1": "home",
                "STA_PASS1": "secret",
                "WIFI_IP_ADDRESS": "192.168.1.20",
            }
        )

        assert '#define STA_SSID1\t"home"\n' in blocks[0]
        assert '#define STA_PASS1\t"secret"\n' in blocks[1]
        assert '#define WIFI_IP_ADDRESS\t"192.168.1.20"\n' in blocks[2]

    def test_unlisted_string_is_bare(self):
        """Test that strings outside the quoted list are not quoted."""
        blocks = render_defines({"MY_LANGUAGE": "en_GB"})

        assert "#define MY_LANGUAGE\ten_GB\n" in blocks[0]

    def test_lowercase_keys_skipped(self):
        """Test that helper fields never reach the header."""
        blocks = render_defines(
            {
                "board": {"name": "esp32dev"},
                "tasmotaVersion": "development",
                "platformio_entries#sensors": {"build_flags": "-DUSE_BME680"},
            }
        )

        assert blocks == []

    def test_one_block_per_uppercase_key_in_order(self):
        """Test block count and key order."""
        config = {
            "USE_A": True,
            "helper": 1,
            "USE_B": "1",
            "USE_C": False,
            "USE_D": 3,
        }

        blocks = render_defines(config)

        assert len(blocks) == 4
        names = [block.split()[1] for block in blocks]
        assert names == ["USE_A", "USE_B", "USE_C", "USE_D"]

    def test_tagged_value_is_unwrapped(self):
        """Test that {'value': ...} fields are emitted with their value."""
        blocks = render_defines({"BOARD_NAME": {"value": "x"}})

        assert blocks == ["#ifdef BOARD_NAME\n  #undef BOARD_NAME\n#endif\n#define BOARD_NAME\tx\n\n"]

    def test_tagged_quoted_override(self):
        """Test that a tag can force quoting of any symbol."""
        blocks = render_defines({"FRIENDLY_NAME": {"value": "Kitchen", "quoted": True}})

        assert '#define FRIENDLY_NAME\t"Kitchen"\n' in blocks[0]

    def test_tagged_emit_false(self):
        """Test that a tag can suppress emission."""
        assert render_defines({"USE_X": {"value": True, "emit": False}}) == []

    def test_zero_is_emitted(self):
        """Test that falsy numbers are still values."""
        blocks = render_defines({"APP_SLEEP": 0})

        assert "#define APP_SLEEP\t0\n" in blocks[0]

    def test_integral_float_formatted_as_integer(self):
        """Test that 5.0 is emitted as 5."""
        blocks = render_defines({"APP_SLEEP": 5.0, "TEMP_OFFSET": 1.5})

        assert "#define APP_SLEEP\t5\n" in blocks[0]
        assert "#define TEMP_OFFSET\t1.5\n" in blocks[1]

    def test_output_is_reproducible(self):
        """Test that identical input renders identically."""
        config = {"USE_A": True, "USE_B": 2, "STA_SSID1": "x"}

        assert render_defines(config) == render_defines(dict(config))


class TestRenderOverrideHeader:
    """Test suite for the complete header."""

    def test_minimal_request(self):
        """Test that a request without board still renders."""
        request = BuildRequest.from_dict(
            {
                "features": {"BOARD_NAME": {"value": "x"}},
                "network": {},
                "version": {},
                "customParams": "",
            }
        )

        header = render_override_header(request)

        assert "#define BOARD_NAME\tx\n" in header
        assert header.count("#define") == 2  # guard + BOARD_NAME

    def test_structure(self):
        """Test include guard, warning and custom params placement."""
        request = BuildRequest(custom_params="#define USE_SUNRISE")

        header = render_override_header(request)

        assert header.startswith("#ifndef _USER_CONFIG_OVERRIDE_H_\n#define _USER_CONFIG_OVERRIDE_H_\n\n")
        assert f"{HEADER_WARNING}\n\n" in header
        assert header.endswith("#define USE_SUNRISE\n#endif\n")

    def test_block_order(self):
        """Test network, features, board, version, custom ordering."""
        request = BuildRequest.from_dict(
            {
                "network": {"STA_SSID1": "home"},
                "features": {
                    "USE_FEATURE": True,
                    "board": {"name": "esp8266", "defines": {"USE_BOARD": True}},
                },
                "version": {"tasmotaVersion": "development", "MY_LANGUAGE": "de_DE"},
                "customParams": "#define CUSTOM_MARK",
            }
        )

        header = render_override_header(request)

        positions = [
            header.index("#define STA_SSID1"),
            header.index("#define USE_FEATURE"),
            header.index("#define USE_BOARD"),
            header.index("#define MY_LANGUAGE"),
            header.index("#define CUSTOM_MARK"),
        ]
        assert positions == sorted(positions)
        assert "tasmotaVersion" not in header
