"""RSA-OAEP key pair used for the session handshake and messages.

Public keys travel as JWK-shaped records so they match what a browser's
``crypto.subtle.exportKey("jwk", ...)`` produces for RSA-OAEP-256.
"""

from __future__ import annotations

import base64
import binascii
import logging
import threading
from typing import Any

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

logger = logging.getLogger(__name__)

KEY_SIZE_BITS = 2048
PUBLIC_EXPONENT = 65537
JWK_ALG = "RSA-OAEP-256"
JWK_KTY = "RSA"


class CryptoError(RuntimeError):
    """Raised when a key or ciphertext cannot be processed."""

    pass


def _b64url_uint(value: int) -> str:
    raw = value.to_bytes((value.bit_length() + 7) // 8 or 1, "big")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _uint_from_b64url(text: str) -> int:
    padded = text + "=" * (-len(text) % 4)
    try:
        return int.from_bytes(base64.urlsafe_b64decode(padded), "big")
    except (binascii.Error, ValueError) as e:
        raise CryptoError(f"Invalid base64url integer: {e}") from e


def _oaep() -> padding.OAEP:
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=None,
    )


class RsaOaepCrypto:
    """Own key pair plus the imported peer public key.

    Thread-Safety:
        Methods are called from executor threads; the peer key is guarded
        by self._lock.
    """

    def __init__(self, key_size: int = KEY_SIZE_BITS) -> None:
        """Initialize crypto state.

        Args:
            key_size: RSA modulus size in bits
        """
        self.key_size = key_size
        self._private_key: rsa.RSAPrivateKey | None = None
        self._peer_key: rsa.RSAPublicKey | None = None
        self._lock = threading.Lock()

    def _own_key(self) -> rsa.RSAPrivateKey:
        with self._lock:
            if self._private_key is None:
                logger.debug("Generating %d-bit RSA key pair", self.key_size)
                self._private_key = rsa.generate_private_key(
                    public_exponent=PUBLIC_EXPONENT,
                    key_size=self.key_size,
                )
            return self._private_key

    def export_public_key(self) -> dict[str, Any]:
        """Export the own public key, generating the key pair on first use.

        Returns:
            JWK-shaped public key record
        """
        numbers = self._own_key().public_key().public_numbers()
        return {
            "alg": JWK_ALG,
            "e": _b64url_uint(numbers.e),
            "key_ops": ["encrypt"],
            "n": _b64url_uint(numbers.n),
            "kty": JWK_KTY,
        }

    def import_peer_key(self, record: dict[str, Any]) -> None:
        """Load the peer's public key.

        Args:
            record: JWK-shaped public key record

        Raises:
            CryptoError: If the record is not an RSA-OAEP-256 public key
        """
        if not isinstance(record, dict):
            raise CryptoError("Public key record must be an object")
        if record.get("kty") != JWK_KTY:
            raise CryptoError(f"Unsupported key type: {record.get('kty')!r}")
        if record.get("alg", JWK_ALG) != JWK_ALG:
            raise CryptoError(f"Unsupported algorithm: {record.get('alg')!r}")

        e, n = record.get("e"), record.get("n")
        if not isinstance(e, str) or not isinstance(n, str):
            raise CryptoError("Public key record is missing 'e' or 'n'")

        try:
            key = rsa.RSAPublicNumbers(_uint_from_b64url(e), _uint_from_b64url(n)).public_key()
        except ValueError as err:
            raise CryptoError(f"Invalid RSA public key: {err}") from err

        with self._lock:
            self._peer_key = key
        logger.info("Imported peer public key (%d bits)", key.key_size)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a message for the peer.

        Args:
            plaintext: Message text

        Returns:
            Base64 ciphertext

        Raises:
            CryptoError: If no peer key is loaded or the message is too long
        """
        with self._lock:
            peer_key = self._peer_key
        if peer_key is None:
            raise CryptoError("No peer key imported")

        try:
            ciphertext = peer_key.encrypt(plaintext.encode("utf-8"), _oaep())
        except ValueError as e:
            raise CryptoError(f"Encryption failed: {e}") from e
        return base64.b64encode(ciphertext).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a message from the peer.

        Args:
            ciphertext: Base64 ciphertext

        Returns:
            Message text

        Raises:
            CryptoError: If the ciphertext is malformed or was not meant for this key
        """
        try:
            raw = base64.b64decode(ciphertext, validate=True)
        except (binascii.Error, ValueError) as e:
            raise CryptoError(f"Invalid base64 ciphertext: {e}") from e

        try:
            return self._own_key().decrypt(raw, _oaep()).decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            raise CryptoError(f"Decryption failed: {e}") from e
