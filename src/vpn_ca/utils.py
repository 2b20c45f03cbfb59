"""
Utility functions for the CA
"""

import os
import hashlib
import logging
import secrets
import tempfile
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional
from cryptography import x509
from cryptography.x509.oid import ExtensionOID, ExtendedKeyUsageOID
from cryptography.hazmat.primitives import serialization
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.panel import Panel
from rich import box

from . import config
from .errors import AlreadyExistsError, CryptoFailureError, StorageError

# Rich consoles: regular output on stdout, diagnostics on stderr
console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)

EKU_NAMES = {
    ExtendedKeyUsageOID.SERVER_AUTH: "serverAuth",
    ExtendedKeyUsageOID.CLIENT_AUTH: "clientAuth"
}


# ============================================
# 📊 LOGGING
# ============================================

def setup_logging(level: str = config.LOG_LEVEL, log_file: Optional[Path] = None) -> None:
    """
    Install the log handlers (Rich on stderr, optional plain file)

    Args:
        level: Level name ("DEBUG", "INFO", ...)
        log_file: Also append records to this file
    """
    handlers = [RichHandler(console=err_console, show_path=False)]

    if log_file is not None:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(config.LOG_FORMAT, config.LOG_DATE_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt=config.LOG_DATE_FORMAT,
        handlers=handlers,
        force=True
    )


# ============================================
# 🔐 CRYPTOGRAPHIC HELPERS
# ============================================

def generate_serial_number() -> int:
    """
    Draw a certificate serial number

    Uniform over [0, 2^SERIAL_NUMBER_BITS) from the OS CSPRNG, sampled once
    per certificate and independent of the subject.

    Returns:
        int: Non-negative serial number

    Raises:
        CryptoFailureError: If the system random source fails
    """
    try:
        return secrets.randbits(config.SERIAL_NUMBER_BITS)
    except OSError as e:
        raise CryptoFailureError(f"unable to generate serial number: {e}", step="generate serial") from e


def calculate_fingerprint(cert: x509.Certificate) -> str:
    """
    SHA-256 fingerprint of a certificate

    Returns:
        str: Hex digest with ':' separators (ex: "A1:B2:C3:...")
    """
    cert_bytes = cert.public_bytes(serialization.Encoding.DER)
    fingerprint = hashlib.sha256(cert_bytes).hexdigest().upper()
    return ':'.join(fingerprint[i:i + 2] for i in range(0, len(fingerprint), 2))


# ============================================
# 📅 DATES
# ============================================

def now_utc() -> datetime:
    """Current time, timezone aware, in UTC"""
    return datetime.now(timezone.utc)


def add_years(dt: datetime, years: int) -> datetime:
    """
    Move a datetime by whole calendar years

    February 29 rolls over to March 1 when the target year is not a leap year.
    """
    try:
        return dt.replace(year=dt.year + years)
    except ValueError:
        return dt.replace(year=dt.year + years, month=3, day=1)


# ============================================
# 📁 FILES
# ============================================

def ensure_directory(path: Path) -> None:
    """
    Create a directory and its parents if needed

    Args:
        path: Directory to create
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(f"unable to create directory: {e}", step="create directory", path=path) from e


def write_file_exclusive(filepath: Path, data: bytes, permissions: int, step: str = "write file") -> None:
    """
    Write a file that must not exist yet, all or nothing

    The bytes go to a temporary file next to the target, which is then
    hard-linked into place. The link fails if the target already exists, so
    an existing file is never overwritten and a reader never sees a partial
    file.

    Args:
        filepath: Target path
        data: Full file content
        permissions: Final mode of the file (ex: 0o600)
        step: Name of the step, for error reports

    Raises:
        AlreadyExistsError: If filepath exists
        StorageError: On any other filesystem fault
    """
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{filepath.name}.", suffix=".tmp", dir=filepath.parent)
    except OSError as e:
        raise StorageError(f"unable to open file: {e}", step=step, path=filepath) from e

    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.chmod(tmp_path, permissions)
        os.link(tmp_path, filepath)
    except FileExistsError as e:
        raise AlreadyExistsError("refusing to overwrite existing file", step=step, path=filepath) from e
    except OSError as e:
        raise StorageError(f"unable to write file: {e}", step=step, path=filepath) from e
    finally:
        tmp_path.unlink(missing_ok=True)

    logger.debug("wrote %s (%d bytes, mode %o)", filepath, len(data), permissions)


def remove_file(filepath: Path) -> None:
    """Remove a file written by a failed operation, if it is still there"""
    try:
        filepath.unlink(missing_ok=True)
        logger.debug("removed %s", filepath)
    except OSError as e:
        logger.warning("unable to remove %s: %s", filepath, e)


# ============================================
# 🎨 CLI DISPLAY WITH RICH
# ============================================

def print_success(message: str) -> None:
    """Print a success message in green"""
    console.print(f"[green]{config.CLI_SYMBOLS['success']} {escape(message)}[/green]")


def print_error(message: str) -> None:
    """Print an error message in red on stderr"""
    err_console.print(f"[red]{config.CLI_SYMBOLS['error']} {escape(message)}[/red]", soft_wrap=True)


def print_header(title: str) -> None:
    """
    Print a framed header

    Args:
        title: Text of the header
    """
    console.print()
    console.print(Panel.fit(
        f"[bold magenta]{escape(title)}[/bold magenta]",
        border_style="magenta",
        box=box.DOUBLE
    ))
    console.print()


def create_table(title: str, columns: list) -> Table:
    """
    Create a styled Rich table ready to be filled

    Args:
        title: Title of the table
        columns: Column names

    Returns:
        Table: Rich table
    """
    table = Table(
        title=title,
        title_style="bold cyan",
        border_style="blue",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )

    for col in columns:
        table.add_column(col)

    return table


def display_cert_info(cert: x509.Certificate) -> None:
    """
    Print the main fields of an X.509 certificate

    Args:
        cert: Certificate to display
    """
    table = create_table(f"{config.CLI_SYMBOLS['cert']} Certificate", ["Field", "Value"])

    table.add_row("Subject", f"[cyan]{escape(cert.subject.rfc4514_string())}[/cyan]")
    table.add_row("Issuer", f"[yellow]{escape(cert.issuer.rfc4514_string())}[/yellow]")
    table.add_row("Serial", f"[green]{cert.serial_number:X}[/green]")
    table.add_row("Valid from", cert.not_valid_before_utc.strftime("%Y-%m-%d %H:%M:%S UTC"))
    table.add_row("Valid until", cert.not_valid_after_utc.strftime("%Y-%m-%d %H:%M:%S UTC"))

    try:
        basic = cert.extensions.get_extension_for_oid(ExtensionOID.BASIC_CONSTRAINTS).value
        table.add_row("CA", "yes" if basic.ca else "no")
    except x509.ExtensionNotFound:
        pass

    try:
        san = cert.extensions.get_extension_for_oid(ExtensionOID.SUBJECT_ALTERNATIVE_NAME).value
        table.add_row("DNS names", ", ".join(san.get_values_for_type(x509.DNSName)))
    except x509.ExtensionNotFound:
        pass

    try:
        eku = cert.extensions.get_extension_for_oid(ExtensionOID.EXTENDED_KEY_USAGE).value
        table.add_row("Extended key usage", ", ".join(EKU_NAMES.get(oid, oid.dotted_string) for oid in eku))
    except x509.ExtensionNotFound:
        pass

    table.add_row("SHA-256 fingerprint", f"[dim]{calculate_fingerprint(cert)}[/dim]")

    console.print(table)


__all__ = [
    'console', 'err_console',

    'setup_logging',

    'generate_serial_number', 'calculate_fingerprint',

    'now_utc', 'add_years',

    'ensure_directory', 'write_file_exclusive', 'remove_file',

    'print_success', 'print_error', 'print_header',
    'create_table', 'display_cert_info'
]
