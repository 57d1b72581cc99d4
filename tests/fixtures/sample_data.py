"""Sample cloud and device payloads."""

from typing import Any

DEVICE_URL = "http://192.168.1.50:8887"


def sample_channels() -> list[dict[str, Any]]:
    """Channel list as returned by the cloud guide endpoint."""
    return [
        {
            "identifier": "S122912_503_01",
            "name": "KOMO",
            "kind": "ota",
            "logos": [
                {"kind": "darkLarge", "url": "https://img.example.com/komo-dark.png"},
                {"kind": "lightLarge", "url": "https://img.example.com/komo-light.png"},
            ],
            "ota": {"major": 4, "minor": 1, "callSign": "KOMO-HD", "network": "ABC"},
        },
        {
            "identifier": "S122913_503_02",
            "name": "KING",
            "kind": "ota",
            "logos": [],
            "ota": {"major": 5, "minor": 1, "callSign": "KING-HD", "network": "NBC"},
        },
        {
            "identifier": "S999_ott_01",
            "name": "Free Movies",
            "kind": "ott",
            "logos": [{"kind": "darkSmall", "url": "https://img.example.com/fm.png"}],
            "ott": {
                "major": 1000,
                "minor": 1,
                "callSign": "FREEMOV",
                "streamUrl": "https://fast.example.com/live/freemovies.m3u8",
            },
        },
        {
            "identifier": "S555_vod",
            "name": "On Demand",
            "kind": "vod",
        },
    ]


def sample_record_data() -> dict[str, Any]:
    """Credential record JSON in its persisted (aliased) layout."""
    return {
        "lighthousetvAuthorization": "Bearer abc123",
        "lighthousetvIdentifier": "acct-0001",
        "profile": {"identifier": "profile-1", "name": "Family"},
        "device": {
            "serverId": "SID_1234ABCD",
            "name": "Living Room",
            "url": DEVICE_URL,
        },
        "Lighthouse": "lh-token-xyz",
        "UUID": "4f1c2f0e-8a4b-4c7d-9e2f-0123456789ab",
        "tuners": 2,
    }


def sample_account() -> dict[str, Any]:
    """Account lookup response with two profiles and two devices."""
    return {
        "identifier": "acct-0001",
        "profiles": [
            {"identifier": "profile-1", "name": "Family"},
            {"identifier": "profile-2", "name": "Kids"},
        ],
        "devices": [
            {"serverId": "SID_1234ABCD", "name": "Living Room", "url": DEVICE_URL},
            {"serverId": "SID_5678EFGH", "name": "Den", "url": "http://192.168.1.51:8887"},
        ],
    }


def sample_airing(**overrides: Any) -> dict[str, Any]:
    """An episode airing."""
    airing = {
        "identifier": "airing-1",
        "title": "Pilot",
        "datetime": "2030-05-01T14:00Z",
        "duration": 1800,
        "description": "The first one.",
        "kind": "episode",
        "show": {"title": "Test Show"},
        "episode": {
            "episodeNumber": 3,
            "season": {"kind": "series", "number": 2},
            "rating": "TV-PG",
        },
        "images": [{"url": "https://img.example.com/pilot.jpg"}],
    }
    airing.update(overrides)
    return airing
