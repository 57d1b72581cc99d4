"""
Interactive account setup.

Walks the operator through login, profile and device selection, then
contacts the device once to learn its tuner count. Nothing is written unless
every step succeeds.
"""

import getpass
import logging
import uuid
from typing import Any, Callable, Optional

from pydantic import ValidationError

from tablo2plex.config import TabloConfig
from tablo2plex.credentials import CredentialRecord, Device, Profile
from tablo2plex.security.prng import MersenneTwister
from tablo2plex.tablo.cloud import CloudAccountError, CloudAuthError, TabloCloudClient
from tablo2plex.tablo.device import DeviceError, TabloDeviceClient

logger = logging.getLogger(__name__)

DEFAULT_TUNERS = 2

DeviceFactory = Callable[[str, str], TabloDeviceClient]


class SetupError(Exception):
    """Setup cannot continue."""


class Prompter:
    """Console prompts. Tests substitute a scripted implementation."""

    def ask(self, question: str, secret: bool = False) -> str:
        if secret:
            return getpass.getpass(f"{question} ")
        return input(f"{question} ").strip()

    def choose(self, question: str, options: list[str]) -> str:
        print(question)
        for index, option in enumerate(options, start=1):
            print(f"  {index}) {option}")
        while True:
            answer = input("> ").strip()
            if answer.isdigit() and 1 <= int(answer) <= len(options):
                return options[int(answer) - 1]
            if answer in options:
                return answer
            print(f"Please enter a number between 1 and {len(options)}.")


def generate_client_uuid(rng: Optional[MersenneTwister] = None) -> str:
    """Random version 4 UUID drawn from the generator."""
    rng = rng or MersenneTwister()
    return str(uuid.UUID(bytes=rng.random_bytes(16), version=4))


async def _login(cloud: TabloCloudClient, config: TabloConfig, prompter: Prompter) -> str:
    while True:
        email = config.username if config.username is not None else prompter.ask("What is your email?")
        password = (
            config.password if config.password is not None
            else prompter.ask("What is your password?", secret=True)
        )
        try:
            return await cloud.login(email, password)
        except CloudAuthError as e:
            logger.error(str(e))
            if config.username is not None and config.password is not None:
                raise SetupError("Configured credentials were rejected") from e
            logger.error("Try again!")


def _pick_profile(profiles: list[dict[str, Any]], config: TabloConfig, prompter: Prompter) -> dict[str, Any]:
    if len(profiles) == 1 or config.auto_profile:
        return profiles[0]
    answer = prompter.choose("Select which profile to use.", [p.get("name", "") for p in profiles])
    return next(p for p in profiles if p.get("name", "") == answer)


def _pick_device(devices: list[dict[str, Any]], config: TabloConfig, prompter: Prompter) -> dict[str, Any]:
    if len(devices) == 1:
        return devices[0]

    if config.device_server_id:
        for device in devices:
            if device.get("serverId") == config.device_server_id:
                return device
        logger.error(f"Device with serverId {config.device_server_id} not found.")
        logger.warning("Falling back to manual selection.")

    answer = prompter.choose(
        "Select which device to use with Plex.",
        [d.get("serverId", "") for d in devices],
    )
    return next(d for d in devices if d.get("serverId", "") == answer)


async def create_credentials(
    cloud: TabloCloudClient,
    config: TabloConfig,
    prompter: Optional[Prompter] = None,
    device_factory: Optional[DeviceFactory] = None,
    rng: Optional[MersenneTwister] = None,
) -> CredentialRecord:
    """
    Run the setup flow and return a complete credential record.

    Args:
        cloud: Cloud API client.
        config: Tablo settings (configured username/password/device skip prompts).
        prompter: Source of operator answers.
        device_factory: Builds a device client from (device url, client uuid).
        rng: Generator for the client UUID.

    Raises:
        SetupError: If the account is unusable, the session token is missing
            or the device cannot be reached.
    """
    prompter = prompter or Prompter()
    if device_factory is None:
        device_factory = lambda url, client_uuid: TabloDeviceClient(url, client_uuid)  # noqa: E731

    authorization = await _login(cloud, config, prompter)

    try:
        account = await cloud.get_account(authorization)
    except CloudAccountError as e:
        raise SetupError(str(e)) from e

    if account.get("identifier") is None:
        raise SetupError("User identifier missing from return. Please check your account and try again.")
    profiles = account.get("profiles")
    if not profiles:
        raise SetupError("User profile data missing from return. Please check your account and try again.")
    devices = account.get("devices")
    if not devices:
        raise SetupError("User device data missing from return. Please check your account and try again.")

    try:
        profile = Profile.model_validate(_pick_profile(profiles, config, prompter))
    except ValidationError as e:
        raise SetupError("User profile data incomplete. Please check your account and try again.") from e
    logger.info(f"Using profile {profile.name}")

    try:
        device = Device.model_validate(_pick_device(devices, config, prompter))
    except ValidationError as e:
        raise SetupError("User device data incomplete. Please check your account and try again.") from e
    logger.info(f"Using device {device.name} {device.server_id} @ {device.url}")

    logger.info("Getting account token.")
    try:
        lighthouse = await cloud.select_device(authorization, profile.identifier, device.server_id)
    except CloudAccountError as e:
        raise SetupError(str(e)) from e

    client_uuid = generate_client_uuid(rng)

    logger.info("Connecting to device.")
    try:
        info = await device_factory(device.url, client_uuid).server_info()
    except DeviceError as e:
        raise SetupError("Could not reach device. Make sure it's on the same network and try again!") from e

    model = info.get("model") or {}
    tuners = model.get("tuners")
    if tuners:
        logger.info(f"Found {model.get('name')} with {tuners} max tuners found!")
    else:
        logger.warning(f"Device did not report a tuner count, assuming {DEFAULT_TUNERS}")
        tuners = DEFAULT_TUNERS

    record = CredentialRecord(
        authorization=authorization,
        account_identifier=account["identifier"],
        profile=profile,
        device=device,
        lighthouse=lighthouse,
        client_uuid=client_uuid,
        tuners=int(tuners),
    )
    logger.info("Credentials successfully created!")
    return record
