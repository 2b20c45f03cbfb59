"""
Signer
Binds a template and a public key to the CA key, and checks issued certificates
"""

import logging
from cryptography import x509
from cryptography.exceptions import InternalError, InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa

from . import templates
from .errors import CryptoFailureError
from .models import CaState, CertificateTemplate, LeafTemplate, RootTemplate

logger = logging.getLogger(__name__)


def _build(template: CertificateTemplate, **kwargs) -> x509.CertificateBuilder:
    try:
        return templates.to_builder(template, **kwargs)
    except (ValueError, TypeError) as e:
        raise CryptoFailureError(f"unable to build certificate: {e}", step="build certificate") from e


def _sign(builder: x509.CertificateBuilder, signing_key: rsa.RSAPrivateKey) -> x509.Certificate:
    try:
        return builder.sign(private_key=signing_key, algorithm=hashes.SHA256())
    except (ValueError, TypeError, InternalError) as e:
        raise CryptoFailureError(f"unable to sign certificate: {e}", step="sign certificate") from e


def sign_root(key: rsa.RSAPrivateKey, template: RootTemplate) -> x509.Certificate:
    """
    Self-sign the root certificate

    The same key is subject and issuer key; subject and issuer names are equal.

    Args:
        key: CA private key
        template: Root template

    Returns:
        x509.Certificate: Self-signed root

    Raises:
        CryptoFailureError: If signing fails
    """
    if not isinstance(template, RootTemplate):
        raise TypeError("sign_root() expects a RootTemplate")

    public_key = key.public_key()
    builder = _build(
        template,
        subject_public_key=public_key,
        issuer_name=templates.subject_name(template),
        issuer_public_key=public_key
    )

    certificate = _sign(builder, key)
    logger.info("self-signed root %r (serial %X)", template.common_name, template.serial_number)
    return certificate


def sign(ca_state: CaState, leaf_key: rsa.RSAPrivateKey, template: LeafTemplate) -> x509.Certificate:
    """
    Issue a leaf certificate

    Args:
        ca_state: Loaded CA (signing key and certificate)
        leaf_key: Key of the leaf; its public half is certified
        template: Server or client template

    Returns:
        x509.Certificate: Leaf signed by the CA, issuer copied from the CA subject

    Raises:
        CryptoFailureError: If signing fails
    """
    if isinstance(template, RootTemplate):
        raise TypeError("sign() issues leaves only, use sign_root() for the CA")

    builder = _build(
        template,
        subject_public_key=leaf_key.public_key(),
        issuer_name=ca_state.subject,
        issuer_public_key=ca_state.public_key
    )

    certificate = _sign(builder, ca_state.private_key)
    logger.info(
        "signed %s certificate %r (serial %X)", template.role.value, template.common_name, template.serial_number
    )
    return certificate


def verify_issued(issuer: x509.Certificate, certificate: x509.Certificate) -> bool:
    """
    Check that a certificate was issued by a CA certificate

    Verifies the issuer name, the signature against the CA public key and that
    the validity window lies inside the CA's. A self-signed root verifies
    against itself.

    Args:
        issuer: CA certificate
        certificate: Certificate to check

    Returns:
        bool: True if every check passes
    """
    try:
        certificate.verify_directly_issued_by(issuer)
    except (ValueError, TypeError, InvalidSignature) as e:
        logger.debug("verification of serial %X failed: %s", certificate.serial_number, e)
        return False

    if certificate.not_valid_after_utc > issuer.not_valid_after_utc:
        logger.debug("serial %X outlives its issuer", certificate.serial_number)
        return False

    return certificate.not_valid_before_utc < certificate.not_valid_after_utc


__all__ = ['sign_root', 'sign', 'verify_issued']
