"""
Credential record and its encrypted on-disk store.

The record is written once by account setup and always replaced wholesale.
Field aliases keep the JSON layout of envelopes written by earlier releases.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tablo2plex.security.cipher import CredentialCipher, EnvelopeError
from tablo2plex.utils.paths import atomic_write_bytes

logger = logging.getLogger(__name__)

JSON_MARKER = 0x7B  # "{"


class CorruptCredentialsError(Exception):
    """The credential file exists but cannot be turned back into a record."""


class Profile(BaseModel):
    model_config = ConfigDict(extra="allow")

    identifier: str
    name: str = ""


class Device(BaseModel):
    model_config = ConfigDict(extra="allow")

    server_id: str = Field(alias="serverId")
    name: str = ""
    url: str


class CredentialRecord(BaseModel):
    """Everything needed to talk to the cloud API and the local device."""

    model_config = ConfigDict(populate_by_name=True)

    authorization: str = Field(alias="lighthousetvAuthorization")
    account_identifier: str = Field(alias="lighthousetvIdentifier")
    profile: Profile
    device: Device
    lighthouse: str = Field(alias="Lighthouse")
    client_uuid: str = Field(alias="UUID")
    tuners: int = 2

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class CredentialStore:
    """Reads and writes the credential envelope file."""

    def __init__(self, path: Path, cipher: CredentialCipher):
        self.path = Path(path)
        self.cipher = cipher

    def exists(self) -> bool:
        return self.path.is_file()

    def save(self, record: CredentialRecord) -> None:
        envelope = self.cipher.encrypt(record.to_json().encode("utf-8"))
        atomic_write_bytes(self.path, envelope)
        logger.info(f"Credentials saved to {self.path}")

    def load(self) -> CredentialRecord:
        """
        Decrypt and validate the stored record.

        Raises:
            FileNotFoundError: If there is no credential file.
            CorruptCredentialsError: If the file cannot be decrypted or does
                not hold a valid record.
        """
        envelope = self.path.read_bytes()

        try:
            plaintext = self.cipher.decrypt(envelope)
        except EnvelopeError as e:
            raise CorruptCredentialsError(f"Could not decrypt {self.path}: {e}") from e

        if not plaintext or plaintext[0] != JSON_MARKER:
            raise CorruptCredentialsError(f"Decrypted {self.path} is not a credential record")

        try:
            data: Any = json.loads(plaintext.decode("utf-8"))
            return CredentialRecord.model_validate(data)
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
            raise CorruptCredentialsError(f"Could not read decrypted {self.path}: {e}") from e

    def discard(self) -> None:
        """
        Delete the credential file.

        Raises:
            OSError: If the file exists but cannot be removed.
        """
        self.path.unlink(missing_ok=True)
