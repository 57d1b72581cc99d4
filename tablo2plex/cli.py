"""
Command line options.

Every option overrides the matching config.yaml / environment setting.
"""

import argparse
from typing import Any, Optional, Sequence

from tablo2plex import __version__


def _bool_arg(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes", "on")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tablo2plex",
        description="HDHomeRun tuner emulation for a Tablo 4th Gen device.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-c", "--creds", action="store_true", help="Force creation of a new creds file.")
    parser.add_argument("-l", "--lineup", action="store_true", help="Force creation of a fresh channel lineup file.")
    parser.add_argument("-n", "--name", help="Name of the device that shows up in Plex.")
    parser.add_argument("-f", "--id", dest="device_id", help="Fake ID of the device, for more than one device on the network.")
    parser.add_argument("-p", "--port", type=int, help="Server port.")
    parser.add_argument("-i", "--interval", type=float, help="How often to refresh the channel lineup, in days.")
    parser.add_argument("-x", "--xml", type=_bool_arg, help="Create an XMLTV guide from Tablo's data.")
    parser.add_argument("-d", "--days", type=int, help="How many days the guide covers (1-7).")
    parser.add_argument("-s", "--pseudo", type=_bool_arg, help="Include the guide at .pseudotv/xmltv.xml.")
    parser.add_argument("-g", "--level", help="Logger level: info, warn, error or debug.")
    parser.add_argument("-k", "--log", type=_bool_arg, help="Also write log output to a file.")
    parser.add_argument("-o", "--outdir", help="Output directory. Default is the working directory.")
    parser.add_argument("-v", "--device", help="Server ID of the Tablo device to use if you have more than one.")
    parser.add_argument("-u", "--user", help="Username used when creds.bin isn't present (auto selects profile).")
    parser.add_argument("-w", "--pass", dest="password", help="Password used when creds.bin isn't present.")
    parser.add_argument("--config", help="Path to config.yaml.")
    return parser


# argparse dest -> config path
_OVERRIDES: dict[str, tuple[str, ...]] = {
    "name": ("device", "friendly_name"),
    "device_id": ("device", "device_id"),
    "port": ("server", "port"),
    "interval": ("lineup", "update_interval_days"),
    "xml": ("guide", "enabled"),
    "days": ("guide", "days"),
    "pseudo": ("guide", "include_pseudotv"),
    "level": ("logging", "level"),
    "log": ("logging", "save"),
    "outdir": ("storage", "output_dir"),
    "device": ("tablo", "device_server_id"),
    "user": ("tablo", "username"),
    "password": ("tablo", "password"),
}


def args_to_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Nested config overrides for the options that were given."""
    overrides: dict[str, Any] = {}
    for dest, path in _OVERRIDES.items():
        value = getattr(args, dest, None)
        if value is None:
            continue
        section = overrides.setdefault(path[0], {})
        section[path[1]] = value
    return overrides


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)
