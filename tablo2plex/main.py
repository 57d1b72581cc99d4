"""
tablo2plex entry point.

Loads configuration, makes sure credentials exist, then serves the
HDHomeRun endpoints with uvicorn while the lineup and guide schedulers run
in the background.
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncGenerator, NoReturn, Optional, Sequence

from fastapi import FastAPI

from tablo2plex import __version__
from tablo2plex.cli import args_to_overrides, parse_args
from tablo2plex.config import Tablo2PlexConfig, load_config
from tablo2plex.console import ConsoleCommands, stream_lines
from tablo2plex.context import GatewayContext
from tablo2plex.credentials import CorruptCredentialsError, CredentialRecord, CredentialStore
from tablo2plex.guide.cache import GuideCache
from tablo2plex.hdhomerun.api import guide_router, hdhomerun_router
from tablo2plex.lineup import ChannelLineup
from tablo2plex.middleware.cors import CORSMiddleware
from tablo2plex.security.cipher import CredentialCipher
from tablo2plex.security.signer import DeviceSigner
from tablo2plex.streaming.session_manager import TunerPool
from tablo2plex.streaming.transcoder import ffmpeg_factory
from tablo2plex.tablo.account_setup import SetupError, create_credentials
from tablo2plex.tablo.cloud import TabloCloudClient
from tablo2plex.tablo.device import TabloDeviceClient
from tablo2plex.tasks.refresh import GuideRefresher, LineupRefresher
from tablo2plex.tasks.scheduler import RefreshScheduler
from tablo2plex.utils.logging_setup import parse_size, setup_logging

logger = logging.getLogger(__name__)

GUIDE_INTERVAL = timedelta(days=1)

PLAINTEXT_NOTE = (
    "NOTE: Your password and email are never stored, but are transmitted in plain text. "
    "Please make sure you are on a trusted network before you continue."
)


def fatal(message: str) -> NoReturn:
    """Log a fatal condition and exit with status 1."""
    logger.error(message)
    if getattr(sys, "frozen", False):
        input("Press Enter to exit...")
    sys.exit(1)


def build_store(config: Tablo2PlexConfig) -> CredentialStore:
    cipher = CredentialCipher(config.secrets.key_constant)
    return CredentialStore(config.storage.credentials_file, cipher)


def build_cloud(config: Tablo2PlexConfig) -> TabloCloudClient:
    return TabloCloudClient(
        host=config.tablo.cloud_host,
        user_agent=config.tablo.user_agent,
        timeout=config.tablo.request_timeout,
    )


def build_device(config: Tablo2PlexConfig, device_url: str, client_uuid: str) -> TabloDeviceClient:
    return TabloDeviceClient(
        device_url,
        client_uuid,
        signer=DeviceSigner(config.tablo.hash_key, config.tablo.device_key),
        user_agent=config.tablo.device_user_agent,
        timeout=config.tablo.request_timeout,
    )


def load_or_exit(store: CredentialStore) -> CredentialRecord:
    """
    Load credentials. A corrupt file is deleted and the process exits so the
    next start runs setup again.
    """
    try:
        return store.load()
    except CorruptCredentialsError as e:
        logger.error(str(e))
        try:
            store.discard()
        except OSError:
            fatal(
                "Issue reading creds file, could not delete bad file. Your app may have "
                "read write issues. Please check your folder settings and start the app again "
                "or use --creds to create a new file."
            )
        fatal(
            "Issue reading creds file. Removed creds file. Please start app again "
            "or use --creds to create a new file."
        )


async def setup_credentials(config: Tablo2PlexConfig, store: CredentialStore) -> CredentialRecord:
    """Run interactive setup and persist the result."""
    logger.warning(PLAINTEXT_NOTE)
    try:
        record = await create_credentials(
            build_cloud(config),
            config.tablo,
            device_factory=lambda url, client_uuid: build_device(config, url, client_uuid),
        )
    except SetupError as e:
        fatal(str(e))
    await asyncio.to_thread(store.save, record)
    logger.info("Credentials successfully encrypted! Ready to use the server!")
    return record


def build_context(config: Tablo2PlexConfig, record: CredentialRecord) -> GatewayContext:
    """Assemble the gateway context and its refresh schedulers."""
    storage = config.storage
    lineup = ChannelLineup()
    cloud = build_cloud(config)

    context = GatewayContext(
        config=config,
        base_url=config.server.resolved_base_url,
        lineup=lineup,
        tuner_pool=TunerPool(record.tuners),
        device=build_device(config, record.device.url, record.client_uuid),
        record=record,
        transcoder_factory=ffmpeg_factory(
            config.ffmpeg.path,
            config.ffmpeg.log_level,
            config.ffmpeg.read_size,
        ),
    )

    lineup_refresher = LineupRefresher(
        cloud,
        record,
        lineup,
        storage.lineup_file,
        device=context.device,
        tuner_pool=context.tuner_pool,
    )
    context.schedulers.append(
        RefreshScheduler(
            storage.lineup_schedule_file,
            "Update channel lineup",
            timedelta(milliseconds=config.lineup.interval_ms),
            lineup_refresher.refresh,
        )
    )

    if config.guide.enabled:
        guide_refresher = GuideRefresher(
            cloud,
            record,
            lineup,
            GuideCache(storage.guide_cache_dir),
            storage.guide_file,
            config.guide.days,
            pseudotv_file=storage.pseudotv_guide_file if config.guide.include_pseudotv else None,
        )
        context.schedulers.append(
            RefreshScheduler(
                storage.guide_schedule_file,
                "Update guide data",
                GUIDE_INTERVAL,
                guide_refresher.refresh,
            )
        )

    return context


async def start_background(context: GatewayContext) -> None:
    """Load the cached lineup and start the schedulers with an eager poll."""
    lineup_file = context.config.storage.lineup_file
    lineup_scheduler, *other_schedulers = context.schedulers

    if lineup_file.exists():
        try:
            await asyncio.to_thread(context.lineup.load_from, lineup_file, context.record.device.url)
        except (OSError, ValueError) as e:
            logger.error(f"Could not read lineup file {lineup_file}: {e}")
    else:
        logger.info("No current channel lineup!")
        await lineup_scheduler.run_now()

    await lineup_scheduler.start()
    for scheduler in other_schedulers:
        await scheduler.start()


async def stop_background(context: GatewayContext) -> None:
    for scheduler in context.schedulers:
        await scheduler.cancel()
    await context.sessions.close_all()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Starts the refresh schedulers on startup and closes every open stream on
    shutdown.
    """
    context: GatewayContext = app.state.context
    logger.info(f"Starting tablo2plex v{__version__}")
    await start_background(context)
    logger.info(f"Server running at {context.base_url} with {context.tuner_count} tuners")

    console_task: Optional[asyncio.Task] = None
    if context.console:
        console_task = asyncio.create_task(ConsoleCommands(context.schedulers).run(stream_lines()))

    yield

    logger.info("Shutting down tablo2plex")
    if console_task is not None:
        console_task.cancel()
        try:
            await console_task
        except asyncio.CancelledError:
            pass
    await stop_background(context)


def create_app(context: GatewayContext, with_lifespan: bool = True) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        context: Gateway context served by the handlers.
        with_lifespan: Start schedulers with the app. Tests that only need
            the HTTP surface turn this off.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="tablo2plex",
        description="HDHomeRun tuner emulation for a Tablo 4th Gen device",
        version=__version__,
        lifespan=lifespan if with_lifespan else None,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.context = context

    app.add_middleware(CORSMiddleware)

    app.include_router(hdhomerun_router)
    if context.config.guide.enabled:
        app.include_router(guide_router)

    return app


async def refresh_now(
    config: Tablo2PlexConfig,
    record: CredentialRecord,
    include_guide: bool = True,
) -> None:
    """Force the lineup (and guide, when enabled) refresh, as for ``--lineup``."""
    context = build_context(config, record)
    schedulers = context.schedulers if include_guide else context.schedulers[:1]
    for scheduler in schedulers:
        await scheduler.run_now()


def configure_logging(config: Tablo2PlexConfig) -> None:
    setup_logging(
        log_level=config.logging.python_level,
        log_file_name=config.logging.file,
        log_to_console=True,
        log_to_file=config.logging.save,
        max_bytes=parse_size(config.logging.max_size),
        backup_count=config.logging.backup_count,
        log_format=config.logging.format,
        log_directory=config.storage.data_dir,
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    """
    Main entry point for running the server.

    Called when running `python -m tablo2plex` or via the `tablo2plex` script.
    """
    import uvicorn

    args = parse_args(argv)
    config = load_config(args.config, args_to_overrides(args))
    configure_logging(config)

    store = build_store(config)

    if args.creds:
        record = asyncio.run(setup_credentials(config, store))
        asyncio.run(refresh_now(config, record, include_guide=False))
        return

    if not store.exists():
        logger.info("No creds file found. Lets log into your Tablo account.")
        record = asyncio.run(setup_credentials(config, store))
    else:
        record = load_or_exit(store)

    if args.lineup:
        asyncio.run(refresh_now(config, record))
        return

    context = build_context(config, record)
    context.console = sys.stdin.isatty()
    app = create_app(context)

    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level=config.server.uvicorn_log_level,
    )


if __name__ == "__main__":
    main()
