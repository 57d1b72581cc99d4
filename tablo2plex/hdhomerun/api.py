"""HDHomeRun API endpoints for Plex/Emby/Jellyfin integration"""

import asyncio
import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from tablo2plex.context import GatewayContext, get_context
from tablo2plex.streaming.response import TransportStreamResponse
from tablo2plex.streaming.session_manager import StreamSession
from tablo2plex.streaming.transcoder import TranscoderError
from tablo2plex.tablo.device import DeviceError

logger = logging.getLogger(__name__)

hdhomerun_router = APIRouter(tags=["HDHomeRun"])

guide_router = APIRouter(tags=["Guide"])

START_FAILED = "Failed to start stream"


def _client_address(request: Request) -> str:
    host = request.client.host if request.client else "unknown"
    return host.replace("::ffff:", "")


@hdhomerun_router.get("/discover.json")
async def discover(context: GatewayContext = Depends(get_context)):
    """HDHomeRun device discovery endpoint"""
    device = context.config.device
    return {
        "FriendlyName": device.friendly_name,
        "Manufacturer": device.manufacturer,
        "ModelNumber": device.model_number,
        "FirmwareName": device.firmware_name,
        "FirmwareVersion": device.firmware_version,
        "DeviceID": device.device_id,
        "DeviceAuth": device.device_auth,
        "BaseURL": context.base_url,
        "LocalIP": context.base_url,
        "LineupURL": f"{context.base_url}/lineup.json",
        "TunerCount": context.tuner_count,
    }


@hdhomerun_router.get("/lineup.json")
async def lineup(context: GatewayContext = Depends(get_context)):
    """HDHomeRun channel lineup"""
    return [entry.to_hdhomerun(context.base_url) for entry in context.lineup.entries()]


@hdhomerun_router.get("/lineup_status.json")
async def lineup_status():
    """HDHomeRun lineup status"""
    return {
        "ScanInProgress": 0,
        "ScanPossible": 1,
        "Source": "Antenna",
        "SourceList": ["Antenna"],
    }


@hdhomerun_router.get("/favicon.ico")
async def favicon():
    return Response(content=b"")


@hdhomerun_router.get("/channel/{channel_id}")
async def stream_channel(
    channel_id: str,
    request: Request,
    context: GatewayContext = Depends(get_context),
):
    """
    Stream a channel as MPEG-TS.

    Streamed (ott) channels start ffmpeg straight away. Over-the-air channels
    first reserve a tuner, then ask the device for a playlist URL; any failure
    after the reservation gives the tuner back.
    """
    entry = context.lineup.get(channel_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Channel not found")

    client = _client_address(request)

    if not entry.is_device_backed:
        transcoder = context.transcoder_factory(entry.source_url)
        try:
            await transcoder.start()
        except TranscoderError as e:
            logger.error(f"Error starting stream: {e}")
            raise HTTPException(status_code=500, detail=START_FAILED)

        logger.info(f"Client {client} connected to {channel_id}, spawning ffmpeg stream.")
        session = context.sessions.register(
            StreamSession(channel_id=channel_id, client=client, transcoder=transcoder)
        )
        return TransportStreamResponse(session, context.sessions)

    pool = context.tuner_pool
    lease = pool.try_acquire()
    if lease is None:
        logger.error(f"Client {client} connected to {channel_id}, but max streams are running.")
        raise HTTPException(status_code=500, detail=START_FAILED)

    started = False
    try:
        if context.device is None:
            raise DeviceError("No device configured")
        playlist_url = await context.device.watch_channel(channel_id)
        transcoder = context.transcoder_factory(playlist_url)
        await transcoder.start()
        started = True
    except (DeviceError, TranscoderError) as e:
        logger.error(f"Error starting stream: {e}")
        raise HTTPException(status_code=500, detail=START_FAILED)
    finally:
        if not started:
            lease.release()

    logger.info(
        f"[{pool.in_use}/{pool.capacity}] Client {client} connected to {channel_id}, "
        f"spawning ffmpeg stream."
    )
    session = context.sessions.register(
        StreamSession(
            channel_id=channel_id,
            client=client,
            transcoder=transcoder,
            lease=lease,
            pool=pool,
        )
    )
    return TransportStreamResponse(session, context.sessions)


@guide_router.get("/guide.xml")
async def guide(context: GatewayContext = Depends(get_context)):
    """Serve the generated XMLTV guide"""
    guide_file: Path = context.config.storage.guide_file
    try:
        data = await asyncio.to_thread(guide_file.read_bytes)
    except OSError:
        raise HTTPException(status_code=404, detail="Guide not found")
    return Response(content=data, media_type="application/xml")
