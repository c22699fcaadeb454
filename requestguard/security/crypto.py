"""Symmetric payload encryption.

Payloads are serialized to JSON and encrypted with a configurable block
cipher, mode and padding. Ciphertext is returned as base64 text. With
fields configured, only the values at those dot paths are encrypted and the
rest of the payload is left untouched.

The built-in default key exists so that a misconfigured client still
works in development. It is logged loudly on use and must never be relied
on in a real deployment; set REQUESTGUARD_CRYPTO_KEY or pass a key.
"""

import base64
import binascii
import copy
import json
import os
from typing import Any

import structlog
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import padding as sym_padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from requestguard.orchestration.config import DEFAULT_CRYPTO_KEY, CryptoOptions
from requestguard.orchestration.errors import EncryptionError
from requestguard.security.paths import get_path, set_path

logger = structlog.get_logger(__name__)

ALGORITHMS: dict[str, Any] = {
    "AES": algorithms.AES,
    "CAMELLIA": algorithms.Camellia,
    "SM4": algorithms.SM4,
}

MODES = ("ECB", "CBC")

PADDINGS: dict[str, Any] = {
    "PKCS7": sym_padding.PKCS7,
    "ANSIX923": sym_padding.ANSIX923,
    "NONE": None,
}


class CryptoCodec:
    """Encrypts outbound and decrypts inbound payloads.

    Example:
        codec = CryptoCodec()
        options = CryptoOptions(key="0123456789abcdef")
        cipher_text = codec.encrypt({"card": "4111"}, options)
        assert codec.decrypt(cipher_text, options) == {"card": "4111"}
    """

    def __init__(self) -> None:
        self._warned_default_key = False

    def encrypt(self, payload: Any, options: CryptoOptions) -> Any:
        """Encrypt a payload.

        Args:
            payload: Data to encrypt. Falsy payloads are returned unchanged.
            options: Cipher settings.

        Returns:
            Base64 ciphertext, or a copy of the payload with the configured
            fields replaced by ciphertext.

        Raises:
            EncryptionError: If serialization or encryption fails.
        """
        if not payload:
            return payload
        if not options.fields:
            return self.encrypt_value(payload, options)

        result = copy.deepcopy(payload)
        for path in options.fields:
            value = get_path(result, path)
            if not value:
                continue
            set_path(result, path, self.encrypt_value(value, options))
        return result

    def decrypt(self, cipher_payload: Any, options: CryptoOptions) -> Any:
        """Decrypt a payload produced by encrypt().

        Args:
            cipher_payload: Base64 ciphertext, or a payload whose configured
                fields hold ciphertext.
            options: Cipher settings used for encryption.

        Returns:
            The plain payload.

        Raises:
            EncryptionError: If the ciphertext is malformed or the settings
                do not match.
        """
        if not cipher_payload:
            return cipher_payload
        if not options.fields:
            return self.decrypt_value(cipher_payload, options)

        result = copy.deepcopy(cipher_payload)
        for path in options.fields:
            value = get_path(result, path)
            if not value:
                continue
            set_path(result, path, self.decrypt_value(value, options))
        return result

    def encrypt_value(self, value: Any, options: CryptoOptions) -> str:
        """Serialize and encrypt a single value as one unit."""
        try:
            plain = json.dumps(value, ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise EncryptionError(f"Payload is not serializable: {e}", operation="encrypt") from e

        algorithm = self._algorithm(options)
        mode_name = options.mode.upper()
        iv = os.urandom(algorithm.block_size // 8) if mode_name == "CBC" else b""
        try:
            data = self._pad(plain, options, algorithm.block_size)
            encryptor = Cipher(algorithm, self._mode(mode_name, iv)).encryptor()
            encrypted = encryptor.update(data) + encryptor.finalize()
        except (ValueError, UnsupportedAlgorithm) as e:
            raise EncryptionError(f"Encryption failed: {e}", operation="encrypt") from e
        return base64.b64encode(iv + encrypted).decode("ascii")

    def decrypt_value(self, cipher_text: Any, options: CryptoOptions) -> Any:
        """Decrypt and deserialize a single value."""
        if not isinstance(cipher_text, (str, bytes)):
            raise EncryptionError(
                f"Ciphertext must be text, got {type(cipher_text).__name__}",
                operation="decrypt",
            )
        try:
            raw = base64.b64decode(cipher_text, validate=True)
        except (binascii.Error, ValueError) as e:
            raise EncryptionError(f"Malformed ciphertext: {e}", operation="decrypt") from e

        algorithm = self._algorithm(options)
        block_bytes = algorithm.block_size // 8
        mode_name = options.mode.upper()
        iv = b""
        if mode_name == "CBC":
            iv, raw = raw[:block_bytes], raw[block_bytes:]
        try:
            decryptor = Cipher(algorithm, self._mode(mode_name, iv)).decryptor()
            data = decryptor.update(raw) + decryptor.finalize()
            plain = self._unpad(data, options, algorithm.block_size)
            return json.loads(plain.decode("utf-8"))
        except (ValueError, UnsupportedAlgorithm) as e:
            # UnicodeDecodeError and JSONDecodeError are ValueErrors too
            raise EncryptionError(f"Decryption failed: {e}", operation="decrypt") from e

    def _algorithm(self, options: CryptoOptions) -> Any:
        """Build the cipher algorithm from options."""
        factory = ALGORITHMS.get(options.algorithm.upper())
        if factory is None:
            raise EncryptionError(
                f"Unsupported algorithm: {options.algorithm}",
                details={"supported": sorted(ALGORITHMS)},
            )
        if options.key == DEFAULT_CRYPTO_KEY and not self._warned_default_key:
            logger.warning("crypto_default_key_in_use", algorithm=options.algorithm)
            self._warned_default_key = True
        try:
            return factory(options.key.encode("utf-8"))
        except ValueError as e:
            raise EncryptionError(f"Invalid key: {e}") from e

    @staticmethod
    def _mode(mode_name: str, iv: bytes) -> Any:
        """Build the cipher mode."""
        if mode_name == "ECB":
            return modes.ECB()
        if mode_name == "CBC":
            if not iv:
                raise EncryptionError("Ciphertext is missing its IV", operation="decrypt")
            return modes.CBC(iv)
        raise EncryptionError(f"Unsupported mode: {mode_name}", details={"supported": list(MODES)})

    @staticmethod
    def _padding(options: CryptoOptions) -> Any:
        name = options.padding.upper()
        if name not in PADDINGS:
            raise EncryptionError(
                f"Unsupported padding: {options.padding}",
                details={"supported": sorted(PADDINGS)},
            )
        return PADDINGS[name]

    def _pad(self, data: bytes, options: CryptoOptions, block_size: int) -> bytes:
        scheme = self._padding(options)
        if scheme is None:
            return data
        padder = scheme(block_size).padder()
        return padder.update(data) + padder.finalize()

    def _unpad(self, data: bytes, options: CryptoOptions, block_size: int) -> bytes:
        scheme = self._padding(options)
        if scheme is None:
            return data
        unpadder = scheme(block_size).unpadder()
        return unpadder.update(data) + unpadder.finalize()
