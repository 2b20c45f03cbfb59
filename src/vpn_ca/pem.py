"""
PEM files of keys and certificates

Every key or certificate reaching or leaving the disk goes through this module.
cryptography produces the armor; this module checks its label on the way in
and on the way out.
Labels are compared exactly: a certificate file is never accepted where a key
is expected, and no other format is silently converted.
"""

import base64
import binascii
import logging
import re
from pathlib import Path

from . import utils
from .errors import MalformedPemError, StorageError, WrongPemTypeError

logger = logging.getLogger(__name__)

# First armored block; the END label must repeat the BEGIN label
PEM_BLOCK = re.compile(
    rb"-----BEGIN ([^\r\n-]+)-----\r?\n(.*?)-----END \1-----",
    re.DOTALL
)


def decode_pem(data: bytes, expected_label: str) -> bytes:
    """
    Extract the DER payload of the first PEM block

    Args:
        data: File content
        expected_label: Label the block must carry

    Returns:
        bytes: DER payload

    Raises:
        MalformedPemError: If no valid PEM block is found
        WrongPemTypeError: If the block label is not expected_label
    """
    match = PEM_BLOCK.search(data)
    if match is None:
        raise MalformedPemError("unable to decode PEM: no PEM block found", step="decode PEM")

    label = match.group(1).decode("ascii", errors="replace")
    if label != expected_label:
        raise WrongPemTypeError(
            f"incorrect PEM type, expected '{expected_label}', got '{label}'",
            step="decode PEM"
        )

    body = b"".join(match.group(2).split())
    # PEM headers (RFC 1421 "Key: value" lines) are not part of our format
    if b":" in body:
        raise MalformedPemError("unable to decode PEM: unexpected headers", step="decode PEM")

    try:
        return base64.b64decode(body, validate=True)
    except binascii.Error as e:
        raise MalformedPemError(f"unable to decode PEM: {e}", step="decode PEM") from e


def write_pem(filepath: Path, pem_data: bytes, label: str, permissions: int) -> None:
    """
    Write a PEM block produced by cryptography to a new file

    The block is decoded once before writing so a file never holds anything
    but a well-formed block of the expected label.

    Args:
        filepath: Target path, must not exist
        pem_data: Output of private_bytes / public_bytes with Encoding.PEM
        label: Label the block must carry
        permissions: Mode of the created file

    Raises:
        MalformedPemError / WrongPemTypeError: If pem_data is not a `label` block
        AlreadyExistsError: If filepath exists
        StorageError: On any other filesystem fault
    """
    decode_pem(pem_data, label)
    utils.write_file_exclusive(filepath, pem_data, permissions, step=f"write {label.lower()}")
    logger.info("wrote %s block to %s", label, filepath)


def read_pem(filepath: Path, expected_label: str) -> bytes:
    """
    Read a file and return the DER payload of its PEM block

    Raises:
        StorageError: If the file cannot be read
        MalformedPemError / WrongPemTypeError: See decode_pem
    """
    try:
        data = filepath.read_bytes()
    except OSError as e:
        raise StorageError(f"unable to open PEM: {e}", step="read PEM", path=filepath) from e

    try:
        return decode_pem(data, expected_label)
    except (MalformedPemError, WrongPemTypeError) as e:
        e.path = filepath
        raise


__all__ = ['decode_pem', 'write_pem', 'read_pem']
