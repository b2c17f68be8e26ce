"""
ROM target profiles.

Each profile describes the generated VHDL entity and the memory it models.
``address_bits`` must cover ``capacity`` addresses.
"""

from typing import Any, Dict

__all__ = ['ROM_PROFILES', 'DEFAULT_PROFILE', 'get_profile']

DEFAULT_PROFILE = "i8052"

ROM_PROFILES: Dict[str, Dict[str, Any]] = {
    "i8052": {
        "capacity": 4096,
        "address_bits": 12,
        "data_bits": 8,
        "entity": "I8052_ROM",
        "package": "I8052_PKG",
        "idle_value": "CD_8",          # driven on reset and out-of-range reads
        "output": "i8052_rom.vhd",
        "description": "I8052 soft core, 4KB on-chip program ROM",
    },
}


def get_profile(name: str = DEFAULT_PROFILE) -> Dict[str, Any]:
    try:
        return ROM_PROFILES[name]
    except KeyError:
        raise KeyError(
            f"unknown ROM profile '{name}' (known: {', '.join(ROM_PROFILES)})"
        ) from None
