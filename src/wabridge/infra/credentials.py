"""File-backed credential store for protocol session key material.

The store keeps one opaque JSON document (whatever the protocol backend hands
us on a credentials update) under a fixed auth directory.

Security:
- Optional AES-256-GCM encryption at rest when BRIDGE_AUTH_KEY is set
- Key material is never logged, only its top-level key names
- Writes go through a temp file + rename so a crash never leaves half a file
"""

from __future__ import annotations

import base64
import json
import os
import shutil
from pathlib import Path
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from wabridge.observability.logging import get_logger
from wabridge.observability.redaction import safe_log_context

logger = get_logger(__name__)

CREDS_FILENAME = "creds.json"

_ENCRYPTED_MARKER = "aesgcm:"


class CredentialStoreError(Exception):
    """Raised when stored credentials cannot be read back."""

    pass


def _get_encryption_key() -> bytes | None:
    """Get optional AES-256 key for credentials at rest.

    Returns:
        32-byte key, or None when BRIDGE_AUTH_KEY is not configured.

    Raises:
        RuntimeError: If BRIDGE_AUTH_KEY is set but invalid.
    """
    key_hex = os.environ.get("BRIDGE_AUTH_KEY")
    if not key_hex:
        return None
    try:
        key = bytes.fromhex(key_hex)
    except ValueError as exc:
        raise RuntimeError("BRIDGE_AUTH_KEY must be hex encoded") from exc
    if len(key) != 32:
        raise RuntimeError(
            "BRIDGE_AUTH_KEY must be 32 bytes hex (64 hex chars). "
            "Generate with: openssl rand -hex 32"
        )
    return key


def _encrypt(plaintext: str, key: bytes) -> str:
    """Encrypt string with AES-256-GCM. Returns marker + base64(nonce + ciphertext)."""
    nonce = os.urandom(12)
    ciphertext = AESGCM(key).encrypt(nonce, plaintext.encode(), None)
    return _ENCRYPTED_MARKER + base64.b64encode(nonce + ciphertext).decode()


def _decrypt(payload: str, key: bytes) -> str:
    """Decrypt a value produced by _encrypt()."""
    raw = base64.b64decode(payload[len(_ENCRYPTED_MARKER):])
    nonce, ciphertext = raw[:12], raw[12:]
    return AESGCM(key).decrypt(nonce, ciphertext, None).decode()


class FileCredentialStore:
    """Persist and retrieve session credentials under a fixed directory."""

    def __init__(self, auth_dir: Path | str) -> None:
        self._auth_dir = Path(auth_dir)

    @property
    def auth_dir(self) -> Path:
        return self._auth_dir

    @property
    def path(self) -> Path:
        return self._auth_dir / CREDS_FILENAME

    def load(self) -> dict[str, Any]:
        """Load stored credentials.

        Returns:
            The stored credential document, or an empty dict on first run.

        Raises:
            CredentialStoreError: If the file exists but cannot be decoded.
        """
        if not self.path.exists():
            logger.info("no stored credentials, starting fresh pairing")
            return {}

        content = self.path.read_text(encoding="utf-8")

        if content.startswith(_ENCRYPTED_MARKER):
            key = _get_encryption_key()
            if key is None:
                raise CredentialStoreError(
                    "stored credentials are encrypted but BRIDGE_AUTH_KEY is not set"
                )
            try:
                content = _decrypt(content, key)
            except (InvalidTag, ValueError) as exc:
                raise CredentialStoreError("cannot decrypt stored credentials") from exc

        try:
            creds = json.loads(content)
        except json.JSONDecodeError as exc:
            raise CredentialStoreError("stored credentials are not valid JSON") from exc

        if not isinstance(creds, dict):
            raise CredentialStoreError("stored credentials must be a JSON object")

        logger.info(
            "credentials loaded",
            extra={"extra_fields": safe_log_context(keys=creds)},
        )
        return creds

    def save(self, creds: dict[str, Any]) -> None:
        """Persist a credential document, replacing the previous one."""
        self._auth_dir.mkdir(parents=True, exist_ok=True)

        content = json.dumps(creds, default=str)
        key = _get_encryption_key()
        if key is not None:
            content = _encrypt(content, key)

        tmp_path = self.path.with_suffix(".json.tmp")
        tmp_path.write_text(content, encoding="utf-8")
        os.replace(tmp_path, self.path)

        logger.debug(
            "credentials saved",
            extra={"extra_fields": safe_log_context(keys=creds, encrypted=key is not None)},
        )

    def clear(self) -> bool:
        """Wipe the auth directory. Returns False if there was nothing to remove."""
        if not self._auth_dir.exists():
            return False
        shutil.rmtree(self._auth_dir)
        logger.warning("credential directory wiped")
        return True
