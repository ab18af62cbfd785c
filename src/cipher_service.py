import os
import enum
import logging
import binascii
import secrets
from dataclasses import dataclass
from typing import Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

# --- Cipher parameters ---
KEY_SIZE = 32   # AES-256
IV_SIZE = 16
BLOCK_SIZE = 16
ENCRYPTED_SUFFIX = '.enc'
DECRYPTED_MARKER = '_decrypted'


class ErrorKind(enum.Enum):
    INVALID_KEY_FORMAT = 'InvalidKeyFormat'
    INVALID_IV_FORMAT = 'InvalidIvFormat'
    INVALID_KEY_OR_IV_LENGTH = 'InvalidKeyOrIvLength'
    FILE_READ_ERROR = 'FileReadError'
    FILE_WRITE_ERROR = 'FileWriteError'
    DECRYPTION_ERROR = 'DecryptionError'


class Operation(enum.Enum):
    ENCRYPT = 'encrypt'
    DECRYPT = 'decrypt'


class CipherServiceError(Exception):
    """Base class for every failure the cipher service reports."""
    kind: ErrorKind
    default_message = 'Operation failed'

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class InvalidKeyFormat(CipherServiceError):
    kind = ErrorKind.INVALID_KEY_FORMAT
    default_message = 'Invalid key format'


class InvalidIvFormat(CipherServiceError):
    kind = ErrorKind.INVALID_IV_FORMAT
    default_message = 'Invalid IV format'


class InvalidKeyOrIvLength(CipherServiceError):
    kind = ErrorKind.INVALID_KEY_OR_IV_LENGTH
    default_message = 'Invalid key/IV length'


class FileReadError(CipherServiceError):
    kind = ErrorKind.FILE_READ_ERROR
    default_message = 'Failed to read file'


class FileWriteError(CipherServiceError):
    kind = ErrorKind.FILE_WRITE_ERROR
    default_message = 'Failed to write file'


class DecryptionError(CipherServiceError):
    kind = ErrorKind.DECRYPTION_ERROR
    default_message = 'Failed to decrypt file'


@dataclass(frozen=True)
class OperationResult:
    ok: bool
    message: str
    error: Optional[ErrorKind] = None
    output_path: Optional[str] = None


def _decode_hex(value: str, error_cls) -> bytes:
    # unhexlify rejects whitespace and odd lengths, unlike bytes.fromhex
    try:
        return binascii.unhexlify(value)
    except (binascii.Error, ValueError, TypeError) as e:
        raise error_cls() from e


def decode_key(key_hex: str) -> bytes:
    return _decode_hex(key_hex, InvalidKeyFormat)


def decode_iv(iv_hex: str) -> bytes:
    return _decode_hex(iv_hex, InvalidIvFormat)


def build_cipher(key: bytes, iv: bytes) -> Cipher:
    """Create a fresh AES-256-CBC context. Never reuse one across files."""
    if len(key) != KEY_SIZE or len(iv) != IV_SIZE:
        raise InvalidKeyOrIvLength()
    return Cipher(algorithms.AES(key), modes.CBC(iv))


def encrypt_bytes(cipher: Cipher, data: bytes) -> bytes:
    padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
    padded = padder.update(data) + padder.finalize()
    encryptor = cipher.encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def decrypt_bytes(cipher: Cipher, data: bytes) -> bytes:
    if not data or len(data) % BLOCK_SIZE:
        raise DecryptionError()
    decryptor = cipher.decryptor()
    unpadder = padding.PKCS7(BLOCK_SIZE * 8).unpadder()
    try:
        padded = decryptor.update(data) + decryptor.finalize()
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as e:
        raise DecryptionError() from e


def encrypted_output_path(file_path: str) -> str:
    # The suffix is always appended, so "x.enc" becomes "x.enc.enc".
    return file_path + ENCRYPTED_SUFFIX


def decrypt_output_path(file_path: str) -> str:
    """Derive where a decrypted file is written.

    Exactly one trailing ``.enc`` is stripped and ``_decrypted`` is inserted
    before the last extension of what remains::

        report.pdf.enc -> report_decrypted.pdf
        archive.enc    -> archive_decrypted
        notes          -> notes_decrypted
    """
    if not file_path.endswith(ENCRYPTED_SUFFIX):
        return file_path + DECRYPTED_MARKER
    remainder = file_path[:-len(ENCRYPTED_SUFFIX)]
    pos = remainder.rfind('.')
    if pos == -1:
        return remainder + DECRYPTED_MARKER
    return remainder[:pos] + DECRYPTED_MARKER + remainder[pos:]


def _read_file(file_path: str) -> bytes:
    try:
        with open(file_path, 'rb') as f_in:
            return f_in.read()
    except OSError as e:
        logging.error(f"Could not read {file_path}: {e}")
        raise FileReadError() from e


def _write_file(output_path: str, data: bytes, message: str):
    try:
        with open(output_path, 'wb') as f_out:
            f_out.write(data)
    except OSError as e:
        logging.error(f"Could not write {output_path}: {e}")
        raise FileWriteError(message) from e


def _prepare_cipher(key_hex: str, iv_hex: str) -> Cipher:
    key = decode_key(key_hex)
    iv = decode_iv(iv_hex)
    return build_cipher(key, iv)


def encrypt_file(file_path: str, key_hex: str, iv_hex: str) -> str:
    """Encrypt ``file_path`` into ``<file_path>.enc`` and return that path.

    Raises a ``CipherServiceError`` subclass on failure. The source file is
    left untouched.
    """
    cipher = _prepare_cipher(key_hex, iv_hex)
    data = _read_file(file_path)
    ciphertext = encrypt_bytes(cipher, data)
    output_path = encrypted_output_path(file_path)
    _write_file(output_path, ciphertext, 'Failed to write encrypted file')
    logging.info(f"Encrypted {file_path} ({len(data)} bytes) to {output_path} ({len(ciphertext)} bytes)")
    return output_path


def decrypt_file(file_path: str, key_hex: str, iv_hex: str) -> str:
    """Decrypt ``file_path`` next to itself and return the output path.

    There is no authentication tag: corrupted ciphertext that still ends in
    valid padding decrypts to wrong plaintext without an error.
    """
    cipher = _prepare_cipher(key_hex, iv_hex)
    data = _read_file(file_path)
    plaintext = decrypt_bytes(cipher, data)
    output_path = decrypt_output_path(file_path)
    _write_file(output_path, plaintext, 'Failed to write decrypted file')
    logging.info(f"Decrypted {file_path} ({len(data)} bytes) to {output_path} ({len(plaintext)} bytes)")
    return output_path


def generate_key() -> str:
    return secrets.token_hex(KEY_SIZE)


def generate_iv() -> str:
    return secrets.token_hex(IV_SIZE)


class CipherService:
    """Single-shot encrypt/decrypt calls that never raise past the boundary."""

    generate_key = staticmethod(generate_key)
    generate_iv = staticmethod(generate_iv)

    def encrypt(self, file_path: str, key_hex: str, iv_hex: str) -> OperationResult:
        return self._call(Operation.ENCRYPT, encrypt_file, file_path, key_hex, iv_hex)

    def decrypt(self, file_path: str, key_hex: str, iv_hex: str) -> OperationResult:
        return self._call(Operation.DECRYPT, decrypt_file, file_path, key_hex, iv_hex)

    def run(self, operation: Operation, file_path: str, key_hex: str, iv_hex: str) -> OperationResult:
        if operation is Operation.ENCRYPT:
            return self.encrypt(file_path, key_hex, iv_hex)
        return self.decrypt(file_path, key_hex, iv_hex)

    def _call(self, operation, func, file_path, key_hex, iv_hex) -> OperationResult:
        try:
            output_path = func(file_path, key_hex, iv_hex)
        except CipherServiceError as e:
            logging.error(f"{operation.value.capitalize()} failed for {os.path.basename(file_path)}: "
                          f"{e.kind.value}: {e.message}")
            return OperationResult(ok=False, message=e.message, error=e.kind)
        return OperationResult(ok=True, message=f"{operation.value.capitalize()}ed {output_path}",
                               output_path=output_path)
