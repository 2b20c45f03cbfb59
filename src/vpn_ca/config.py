"""
Global configuration of the CA
Holds every constant and policy parameter of the project
"""

import os
from pathlib import Path
from datetime import timedelta
from typing import Optional

# ============================================
# 📁 FILE LAYOUT
# ============================================

# Environment variable pointing to the CA root directory
CA_DIR_ENV = "CA_DIR"

CA_KEY_FILE = "ca.key"
CA_CERT_FILE = "ca.crt"

# Leaf subdirectories, relative to the CA root
SERVER_DIR = "server"
CLIENT_DIR = "client"

KEY_SUFFIX = ".key"
CERT_SUFFIX = ".crt"

# ============================================
# 🔐 CRYPTOGRAPHIC PARAMETERS
# ============================================

RSA_KEY_SIZE = 3072
MIN_RSA_KEY_SIZE = 3072
RSA_PUBLIC_EXPONENT = 65537

# Serial numbers are drawn uniformly from [0, 2^128)
SERIAL_NUMBER_BITS = 128

# PEM labels
PEM_PRIVATE_KEY = "PRIVATE KEY"
PEM_CERTIFICATE = "CERTIFICATE"

# ============================================
# 📜 X.509 PARAMETERS
# ============================================

DEFAULT_CA_NAME = "Root CA"

# Default validity (calendar years)
VALIDITY_YEARS = {
    "root": 5,
    "server": 1,
    "client": 1
}

# notBefore is backdated so fresh certificates are valid on slightly skewed clocks
CLOCK_SKEW = timedelta(minutes=5)

# Accepted common names (leaf names end up in file paths)
COMMON_NAME_PATTERN = r"^[A-Za-z0-9\-.]+$"

# X.520 upper bound of a commonName
MAX_COMMON_NAME_LENGTH = 64

# Legacy spelling of "inherit the CA expiry" on the command line
INHERIT_SENTINEL = "CA"

# ============================================
# 🔒 SECURITY
# ============================================

PRIVATE_KEY_PERMISSIONS = 0o600  # rw-------
CERT_PERMISSIONS = 0o644  # rw-r--r--

# ============================================
# 📊 LOGS
# ============================================

LOG_LEVEL = "WARNING"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# ============================================
# 🎨 CLI DISPLAY
# ============================================

CLI_SYMBOLS = {
    "success": "✓",
    "error": "✗",
    "cert": "📜",
    "root": "👑",
    "client": "👤",
    "server": "🖥️"
}


# ============================================
# 🛠️ PATH HELPERS
# ============================================

def get_ca_dir(ca_dir: Optional[str] = None) -> Path:
    """
    Resolve the CA root directory

    Args:
        ca_dir: Explicit directory (takes precedence)

    Returns:
        Path: The explicit directory, else $CA_DIR, else the current directory
    """
    if ca_dir:
        return Path(ca_dir)
    return Path(os.environ.get(CA_DIR_ENV) or ".")


def get_role_dir(ca_dir: Path, role: str) -> Path:
    """
    Directory holding the files of a role

    Args:
        ca_dir: CA root directory
        role: "root", "server" or "client"

    Returns:
        Path: ca_dir itself for the root, its subdirectory for leaves
    """
    if role == "server":
        return ca_dir / SERVER_DIR
    if role == "client":
        return ca_dir / CLIENT_DIR
    return ca_dir


def get_key_path(ca_dir: Path, role: str, common_name: str = "") -> Path:
    """Path of the private key of an identity"""
    if role == "root":
        return ca_dir / CA_KEY_FILE
    return get_role_dir(ca_dir, role) / f"{common_name}{KEY_SUFFIX}"


def get_cert_path(ca_dir: Path, role: str, common_name: str = "") -> Path:
    """Path of the certificate of an identity"""
    if role == "root":
        return ca_dir / CA_CERT_FILE
    return get_role_dir(ca_dir, role) / f"{common_name}{CERT_SUFFIX}"


__all__ = [
    'CA_DIR_ENV', 'CA_KEY_FILE', 'CA_CERT_FILE', 'SERVER_DIR', 'CLIENT_DIR',
    'KEY_SUFFIX', 'CERT_SUFFIX',

    'RSA_KEY_SIZE', 'MIN_RSA_KEY_SIZE', 'RSA_PUBLIC_EXPONENT', 'SERIAL_NUMBER_BITS',
    'PEM_PRIVATE_KEY', 'PEM_CERTIFICATE',

    'DEFAULT_CA_NAME', 'VALIDITY_YEARS', 'CLOCK_SKEW', 'COMMON_NAME_PATTERN', 'MAX_COMMON_NAME_LENGTH',
    'INHERIT_SENTINEL',

    'PRIVATE_KEY_PERMISSIONS', 'CERT_PERMISSIONS',

    'LOG_LEVEL', 'LOG_FORMAT', 'LOG_DATE_FORMAT',

    'CLI_SYMBOLS',

    'get_ca_dir', 'get_role_dir', 'get_key_path', 'get_cert_path'
]
