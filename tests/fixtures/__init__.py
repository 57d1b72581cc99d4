"""
Test Fixtures

Shared sample data and fakes for the device, cloud and transcoder.
"""

from .fakes import FakeCloud, FakeDevice, FakeTranscoder, FakeTranscoderFactory
from .sample_data import DEVICE_URL, sample_account, sample_airing, sample_channels, sample_record_data

__all__ = [
    "FakeCloud",
    "FakeDevice",
    "FakeTranscoder",
    "FakeTranscoderFactory",
    "DEVICE_URL",
    "sample_account",
    "sample_airing",
    "sample_channels",
    "sample_record_data",
]
