"""
Certificate Authority operations
Bootstraps the root, loads it back, and issues server and client certificates
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional
from cryptography import x509
from cryptography.hazmat.primitives import serialization

from . import config, pem, signer, templates, utils, validity
from .errors import (
    AlreadyExistsError,
    CaNotInitializedError,
    CorruptCaStateError,
    CryptoFailureError,
    MalformedPemError,
    WrongPemTypeError,
)
from .keygen import KeyGenerator
from .models import (
    CaState,
    DefaultExpiry,
    ExpirationRequest,
    IssuedCertificate,
    Role,
)

logger = logging.getLogger(__name__)

_LEAF_TEMPLATES = {
    Role.SERVER: templates.server_template,
    Role.CLIENT: templates.client_template,
}


def _refuse_existing(*paths: Path) -> None:
    for path in paths:
        if path.exists():
            raise AlreadyExistsError("file already exists", step="check output files", path=path)


def _write_certificate(cert_path: Path, certificate: x509.Certificate) -> None:
    pem_data = certificate.public_bytes(serialization.Encoding.PEM)
    pem.write_pem(cert_path, pem_data, config.PEM_CERTIFICATE, config.CERT_PERMISSIONS)


# ============================================
# 📂 CA STATE LOADER
# ============================================

def load_certificate(cert_path: Path) -> x509.Certificate:
    """
    Read a PEM certificate file

    Raises:
        StorageError: If the file cannot be read
        MalformedPemError / WrongPemTypeError: If the armor is wrong
        CryptoFailureError: If the payload is not a certificate
    """
    der = pem.read_pem(cert_path, config.PEM_CERTIFICATE)
    try:
        return x509.load_der_x509_certificate(der)
    except ValueError as e:
        raise CryptoFailureError(f"unable to parse cert: {e}", step="load certificate", path=cert_path) from e


def load_ca_certificate(ca_dir: Path) -> x509.Certificate:
    """
    Read only ca.crt (enough to verify, not to sign)

    Raises:
        CaNotInitializedError: If ca.crt is missing
        CorruptCaStateError: If ca.crt cannot be decoded
    """
    cert_path = config.get_cert_path(ca_dir, Role.ROOT.value)
    if not cert_path.exists():
        raise CaNotInitializedError("CA not initialized, run 'vpn-ca init' first", step="load CA", path=cert_path)

    try:
        return load_certificate(cert_path)
    except (MalformedPemError, WrongPemTypeError, CryptoFailureError) as e:
        raise CorruptCaStateError(e.message, step="load CA", path=cert_path) from e


def load_ca(ca_dir: Path) -> CaState:
    """
    Read ca.key and ca.crt back into memory

    Args:
        ca_dir: CA root directory

    Returns:
        CaState: Signing key and certificate of the CA

    Raises:
        CaNotInitializedError: If either file is missing
        CorruptCaStateError: If either file cannot be decoded, or they do not match
    """
    key_path = config.get_key_path(ca_dir, Role.ROOT.value)
    cert_path = config.get_cert_path(ca_dir, Role.ROOT.value)

    for path in (key_path, cert_path):
        if not path.exists():
            raise CaNotInitializedError("CA not initialized, run 'vpn-ca init' first", step="load CA", path=path)

    try:
        private_key = KeyGenerator.load_private_key(key_path)
        certificate = load_certificate(cert_path)
    except (MalformedPemError, WrongPemTypeError, CryptoFailureError) as e:
        raise CorruptCaStateError(e.message, step="load CA", path=e.path) from e

    if certificate.public_key().public_numbers() != private_key.public_key().public_numbers():
        raise CorruptCaStateError("CA key does not match CA certificate", step="load CA", path=key_path)

    logger.info("loaded CA %s (expires %s)", certificate.subject.rfc4514_string(),
                certificate.not_valid_after_utc.isoformat())
    return CaState(private_key=private_key, certificate=certificate, ca_dir=ca_dir)


# ============================================
# 👑 ROOT CA
# ============================================

class RootCAManager:
    """
    Creates the root of the CA

    Args:
        key_gen: Key generator (defaults to RSA 3072 without progress bar)
    """

    def __init__(self, key_gen: Optional[KeyGenerator] = None):
        self.key_gen = key_gen or KeyGenerator()

    def create_root_ca(
            self,
            ca_dir: Path,
            common_name: str = config.DEFAULT_CA_NAME,
            now: Optional[datetime] = None
    ) -> IssuedCertificate:
        """
        Generate ca.key and the self-signed ca.crt

        The root is valid for VALIDITY_YEARS["root"] years from now. On any
        failure after the key was written, the key file is removed again.

        Args:
            ca_dir: CA root directory (must exist)
            common_name: Subject of the CA
            now: Issuance time (defaults to the current time)

        Returns:
            IssuedCertificate: Root certificate and file paths

        Raises:
            AlreadyExistsError: If ca.key or ca.crt already exists
        """
        key_path = config.get_key_path(ca_dir, Role.ROOT.value)
        cert_path = config.get_cert_path(ca_dir, Role.ROOT.value)
        _refuse_existing(key_path, cert_path)

        now = now or utils.now_utc()
        not_after = utils.add_years(now, config.VALIDITY_YEARS[Role.ROOT.value])
        template = templates.root_template(common_name, not_after, now)

        key = self.key_gen.generate_key(key_path)
        try:
            certificate = signer.sign_root(key, template)
            _write_certificate(cert_path, certificate)
        except BaseException:
            # never leave a key without its certificate
            utils.remove_file(key_path)
            raise

        logger.info("initialized CA %r in %s", common_name, ca_dir)
        return IssuedCertificate(role=Role.ROOT, certificate=certificate, key_path=key_path, cert_path=cert_path)


# ============================================
# 📜 LEAF CERTIFICATES
# ============================================

class CertificateIssuer:
    """
    Issues server and client certificates signed by a loaded CA

    Args:
        ca_state: Loaded CA, shared read-only by every issuance
        key_gen: Key generator for the leaf keys
    """

    def __init__(self, ca_state: CaState, key_gen: Optional[KeyGenerator] = None):
        self.ca_state = ca_state
        self.key_gen = key_gen or KeyGenerator()

    def issue(
            self,
            role: Role,
            common_name: str,
            requested: ExpirationRequest = DefaultExpiry(),
            now: Optional[datetime] = None
    ) -> IssuedCertificate:
        """
        Generate a leaf key and its certificate

        Everything that can be checked up front (name, existing files,
        expiration) is checked before the key is generated. If signing or
        writing the certificate fails, the new key file is removed.

        Args:
            role: Role.SERVER or Role.CLIENT
            common_name: Leaf name, also used for the file names
            requested: Expiration request
            now: Issuance time (defaults to the current time)

        Returns:
            IssuedCertificate: Leaf certificate and file paths

        Raises:
            InvalidNameError: If common_name is rejected
            AlreadyExistsError: If the key or certificate file exists
            InvalidTimestampError / NotInFutureError / ExceedsIssuerValidityError:
                If the expiration cannot be honoured
        """
        if role not in _LEAF_TEMPLATES:
            raise ValueError(f"cannot issue a leaf with role {role!r}")

        templates.validate_common_name(common_name)

        ca_dir = self.ca_state.ca_dir
        key_path = config.get_key_path(ca_dir, role.value, common_name)
        cert_path = config.get_cert_path(ca_dir, role.value, common_name)
        _refuse_existing(key_path, cert_path)

        now = now or utils.now_utc()
        not_after = validity.resolve_not_after(
            requested,
            config.VALIDITY_YEARS[role.value],
            self.ca_state.not_after,
            now
        )
        template = _LEAF_TEMPLATES[role](common_name, not_after, now)

        leaf_key = self.key_gen.generate_key(key_path)
        try:
            certificate = signer.sign(self.ca_state, leaf_key, template)
            _write_certificate(cert_path, certificate)
        except BaseException:
            # never leave a key without its certificate
            utils.remove_file(key_path)
            raise

        return IssuedCertificate(role=role, certificate=certificate, key_path=key_path, cert_path=cert_path)

    def issue_server_certificate(
            self,
            common_name: str,
            requested: ExpirationRequest = DefaultExpiry(),
            now: Optional[datetime] = None
    ) -> IssuedCertificate:
        """Issue a server certificate (see issue())"""
        return self.issue(Role.SERVER, common_name, requested, now)

    def issue_client_certificate(
            self,
            common_name: str,
            requested: ExpirationRequest = DefaultExpiry(),
            now: Optional[datetime] = None
    ) -> IssuedCertificate:
        """Issue a client certificate (see issue())"""
        return self.issue(Role.CLIENT, common_name, requested, now)


__all__ = ['load_certificate', 'load_ca_certificate', 'load_ca', 'RootCAManager', 'CertificateIssuer']
