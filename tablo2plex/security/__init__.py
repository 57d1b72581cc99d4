"""Credential obfuscation and device request signing."""

from tablo2plex.security.cipher import CredentialCipher, EnvelopeError
from tablo2plex.security.prng import MersenneTwister
from tablo2plex.security.signer import DeviceSigner

__all__ = [
    "CredentialCipher",
    "DeviceSigner",
    "EnvelopeError",
    "MersenneTwister",
]
