"""
Credential file cipher.

The envelope is the 4-byte little-endian seed followed by AES-256-CBC
ciphertext with PKCS#7 padding. The key is folded from a fixed constant and
the IV is regenerated from the seed, so anyone holding this code can open the
file. It keeps credentials out of casual view and nothing more.
"""

import logging
import struct
from typing import Callable, Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from tablo2plex.security.prng import MersenneTwister

logger = logging.getLogger(__name__)

DEFAULT_KEY_CONSTANT = (
    "30818902818100B507AAAC6B6B1BA5CE02B8512381159ECFD9CD32D6EEADCAFF459EA7E2210819C2D9"
    "15F437E30871DDA190F19B8898038E1E7863A21699CDA5BC6C84C49D935AFAFFE1D2F16B0C662DC8941D"
    "8751FB7A36AC22F5980EDF92FCF7756FC6FCFD967A73303C7CD7030C681799C18E0A2F2D2B69C9F7BD8A"
    "DE05731BB179F354F0E90203010001"
)

KEY_SIZE = 32
BLOCK_SIZE = 16
SEED_SIZE = 4


class EnvelopeError(ValueError):
    """Raised when a blob cannot be a valid envelope."""


def derive_key(constant: bytes) -> bytes:
    """Fold the constant into a 32-byte key, one little-endian word at a time."""
    if len(constant) % 4:
        raise ValueError(f"Key constant length must be a multiple of 4, got {len(constant)}")

    words = [0] * (KEY_SIZE // 4)
    for i, (value,) in enumerate(struct.iter_unpack("<I", constant)):
        words[i % len(words)] ^= value
    return struct.pack("<8I", *words)


def derive_iv(seed: int) -> bytes:
    """Derive the IV from a second generator seeded with the inverted seed."""
    mt = MersenneTwister((seed ^ 0xFFFFFFFF) & 0xFFFFFFFF)
    skip = (mt.next_word() & 0xF) + 1
    for _ in range(skip):
        mt.next_word()
    return struct.pack("<4I", *(mt.next_word() for _ in range(BLOCK_SIZE // 4)))


def _time_seed() -> int:
    return MersenneTwister().next_word()


class CredentialCipher:
    """
    Encrypts and decrypts credential envelopes.

    Args:
        key_constant: Hex string the key is folded from. Defaults to the
            built-in constant.
        seed_source: Callable returning the 32-bit envelope seed. Defaults to
            a time-seeded generator.
    """

    def __init__(
        self,
        key_constant: Optional[str] = None,
        seed_source: Optional[Callable[[], int]] = None,
    ):
        try:
            constant = bytes.fromhex(key_constant or DEFAULT_KEY_CONSTANT)
        except ValueError as e:
            raise ValueError(f"Key constant is not valid hex: {e}") from e
        self._key = derive_key(constant)
        self._seed_source = seed_source or _time_seed

    def encrypt(self, plaintext: bytes) -> bytes:
        seed = self._seed_source() & 0xFFFFFFFF
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(derive_iv(seed))).encryptor()
        return struct.pack("<I", seed) + encryptor.update(padded) + encryptor.finalize()

    def decrypt(self, envelope: bytes) -> bytes:
        """
        Recover the plaintext of an envelope.

        The caller decides whether the plaintext is meaningful; a wrong key
        usually yields garbage rather than an error.

        Raises:
            EnvelopeError: If the envelope is too short, misaligned or its
                padding is invalid.
        """
        if len(envelope) < SEED_SIZE + BLOCK_SIZE:
            raise EnvelopeError(f"Envelope too short ({len(envelope)} bytes)")
        body = envelope[SEED_SIZE:]
        if len(body) % BLOCK_SIZE:
            raise EnvelopeError(f"Ciphertext length {len(body)} is not a multiple of {BLOCK_SIZE}")

        (seed,) = struct.unpack_from("<I", envelope)
        decryptor = Cipher(algorithms.AES(self._key), modes.CBC(derive_iv(seed))).decryptor()
        padded = decryptor.update(body) + decryptor.finalize()

        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        try:
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError as e:
            raise EnvelopeError("Invalid padding") from e
