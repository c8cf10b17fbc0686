"""
Setup file.
"""

from setuptools import setup

KEYWORDS = "tasmota firmware esp8266 esp32 platformio compiler build configuration"


if __name__ == "__main__":
    setup(
        keywords=KEYWORDS,
        include_package_data=True)
