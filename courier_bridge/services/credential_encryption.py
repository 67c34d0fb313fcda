"""AES-256-GCM encryption for stored courier credentials.

Key source precedence:
    1. COURIER_BRIDGE_CREDENTIAL_KEY env var (base64-encoded 32-byte key)
    2. COURIER_BRIDGE_CREDENTIAL_KEY_FILE env var (path to raw key file)
    3. Key file in the platform data directory, generated on first use

Ciphertext is a versioned JSON envelope. The AAD binds each envelope to its
courier id, so a blob copied onto another courier row fails to decrypt.
"""

import base64
import binascii
import json
import logging
import os
import stat
import sys
from pathlib import Path

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

KEY_FILENAME = ".courier_bridge_key"
KEY_ENV = "COURIER_BRIDGE_CREDENTIAL_KEY"
KEY_FILE_ENV = "COURIER_BRIDGE_CREDENTIAL_KEY_FILE"

_ENVELOPE_VERSION = 1
_ALGORITHM = "AES-256-GCM"
_KEY_LENGTH = 32
_NONCE_LENGTH = 12


class CredentialDecryptionError(Exception):
    """Raised when a stored credential envelope cannot be decrypted."""


def credential_aad(courier_id: str) -> str:
    """Additional authenticated data for a courier's credential envelope."""
    return f"courier:{courier_id}"


def _check_length(key: bytes, source: str) -> bytes:
    if len(key) != _KEY_LENGTH:
        raise ValueError(f"{source} has invalid length {len(key)} (expected {_KEY_LENGTH})")
    return key


def _read_key_file(path: Path, source: str) -> bytes:
    if path.is_symlink():
        raise ValueError(f"{source} is a symlink: {path}. Symlinked key files are rejected.")
    if not path.is_file():
        raise ValueError(f"{source} is not a regular file: {path}")
    return _check_length(path.read_bytes(), source)


def _generate_key_file(path: Path) -> bytes:
    key = os.urandom(_KEY_LENGTH)
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    except FileExistsError:
        # Another process created it between our existence check and open.
        return _read_key_file(path, f"Key file {path}")
    try:
        os.write(fd, key)
    finally:
        os.close(fd)
    logger.info("Generated new credential encryption key at %s", path)
    return key


def get_or_create_key(key_dir: str | None = None) -> bytes:
    """Load or generate the 32-byte AES-256 key.

    Args:
        key_dir: Directory for the generated key file (source 3 only).
            Defaults to the platform data directory.

    Returns:
        32-byte key.

    Raises:
        ValueError: Invalid base64 or wrong key length from any source.
    """
    env_key = os.environ.get(KEY_ENV, "").strip()
    if env_key:
        try:
            decoded = base64.b64decode(env_key, validate=True)
        except binascii.Error as e:
            raise ValueError(f"{KEY_ENV} contains invalid base64: {e}") from e
        return _check_length(decoded, KEY_ENV)

    env_key_file = os.environ.get(KEY_FILE_ENV, "").strip()
    if env_key_file:
        path = Path(env_key_file)
        if not path.exists():
            raise ValueError(f"{KEY_FILE_ENV} path does not exist: {path}")
        return _read_key_file(path, KEY_FILE_ENV)

    if key_dir is None:
        from courier_bridge.utils.paths import get_data_dir

        key_dir = str(get_data_dir())
    directory = Path(key_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / KEY_FILENAME

    if not path.exists():
        return _generate_key_file(path)

    key = _read_key_file(path, f"Key file {path}")
    if sys.platform != "win32":
        mode = stat.S_IMODE(path.stat().st_mode)
        if mode & (stat.S_IRWXG | stat.S_IRWXO):
            logger.warning("Key file %s has permissions %o; chmod 600 recommended", path, mode)
    return key


def encrypt_credentials(credentials: dict, key: bytes, aad: str = "") -> str:
    """Encrypt a credentials dict into a JSON envelope string.

    Raises:
        ValueError: If key is not exactly 32 bytes.
    """
    _check_length(key, "Encryption key")
    nonce = os.urandom(_NONCE_LENGTH)
    plaintext = json.dumps(credentials, sort_keys=True).encode("utf-8")
    ciphertext = AESGCM(key).encrypt(nonce, plaintext, aad.encode("utf-8") if aad else None)
    return json.dumps({
        "v": _ENVELOPE_VERSION,
        "alg": _ALGORITHM,
        "nonce": base64.b64encode(nonce).decode("ascii"),
        "ct": base64.b64encode(ciphertext).decode("ascii"),
    })


def decrypt_credentials(encrypted: str, key: bytes, aad: str = "") -> dict:
    """Decrypt an envelope produced by encrypt_credentials.

    Raises:
        CredentialDecryptionError: Wrong key or AAD, tampered or malformed
            envelope, or a payload that is not a JSON object.
    """
    if len(key) != _KEY_LENGTH:
        raise CredentialDecryptionError(f"Decryption key must be {_KEY_LENGTH} bytes (got {len(key)})")
    try:
        envelope = json.loads(encrypted)
        if envelope.get("v") != _ENVELOPE_VERSION or envelope.get("alg") != _ALGORITHM:
            raise CredentialDecryptionError(
                f"Unsupported envelope v={envelope.get('v')!r} alg={envelope.get('alg')!r}"
            )
        nonce = base64.b64decode(envelope["nonce"], validate=True)
        ciphertext = base64.b64decode(envelope["ct"], validate=True)
    except CredentialDecryptionError:
        raise
    except (json.JSONDecodeError, TypeError, AttributeError, KeyError, binascii.Error) as e:
        raise CredentialDecryptionError(f"Malformed envelope: {e}") from e

    if len(nonce) != _NONCE_LENGTH:
        raise CredentialDecryptionError(f"Invalid nonce length {len(nonce)}")

    try:
        plaintext = AESGCM(key).decrypt(nonce, ciphertext, aad.encode("utf-8") if aad else None)
        result = json.loads(plaintext.decode("utf-8"))
    except Exception as e:
        raise CredentialDecryptionError(f"Decryption failed: {type(e).__name__}") from e
    if not isinstance(result, dict):
        raise CredentialDecryptionError(f"Decrypted payload is not a dict (got {type(result).__name__})")
    return result
