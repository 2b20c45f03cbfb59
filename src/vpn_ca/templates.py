"""
Certificate templates
Builds the unsigned descriptor of each role and turns it into an X.509 builder
"""

import re
from datetime import datetime
from typing import Optional
from cryptography import x509
from cryptography.x509.oid import NameOID, ExtendedKeyUsageOID
from cryptography.hazmat.primitives.asymmetric import rsa

from . import config, utils
from .errors import InvalidNameError
from .models import (
    CertificateTemplate,
    ClientTemplate,
    ExtKeyUsage,
    KeyUsage,
    RootTemplate,
    ServerTemplate,
)

_COMMON_NAME = re.compile(config.COMMON_NAME_PATTERN)

_EKU_OIDS = {
    ExtKeyUsage.SERVER_AUTH: ExtendedKeyUsageOID.SERVER_AUTH,
    ExtKeyUsage.CLIENT_AUTH: ExtendedKeyUsageOID.CLIENT_AUTH,
}


# ============================================
# 🔍 NAME VALIDATION
# ============================================

def _check_encodable(name: str) -> str:
    # The subject is built here, before any key is generated for it
    if len(name) > config.MAX_COMMON_NAME_LENGTH:
        raise InvalidNameError(
            f"common name is {len(name)} characters long, maximum is {config.MAX_COMMON_NAME_LENGTH}",
            step="validate name",
            field="common_name"
        )
    try:
        x509.NameAttribute(NameOID.COMMON_NAME, name)
    except ValueError as e:
        raise InvalidNameError(f"invalid common name {name!r}: {e}", step="validate name", field="common_name") from e
    return name


def validate_common_name(name: str) -> str:
    """
    Check a leaf common name

    The name becomes part of the output file path, so only letters, digits,
    '-' and '.' are accepted, at most 64 of them.

    Args:
        name: Candidate common name

    Returns:
        str: The name, unchanged

    Raises:
        InvalidNameError: If the name is empty, too long or has any other character
    """
    if not isinstance(name, str) or _COMMON_NAME.fullmatch(name) is None:
        raise InvalidNameError(f"invalid common name {name!r}", step="validate name", field="common_name")
    return _check_encodable(name)


def _validate_root_name(name: str) -> str:
    # ca.key / ca.crt never include the root name
    if not isinstance(name, str) or not name.strip():
        raise InvalidNameError("CA common name must not be empty", step="validate name", field="common_name")
    return _check_encodable(name)


# ============================================
# 📜 TEMPLATES PER ROLE
# ============================================

def _not_before(now: Optional[datetime]) -> datetime:
    return (now or utils.now_utc()) - config.CLOCK_SKEW


def root_template(common_name: str, not_after: datetime, now: Optional[datetime] = None) -> RootTemplate:
    """
    Template of the self-signed root

    Args:
        common_name: Name of the CA
        not_after: Expiration of the CA
        now: Issuance time (defaults to the current time)
    """
    return RootTemplate(
        common_name=_validate_root_name(common_name),
        serial_number=utils.generate_serial_number(),
        not_before=_not_before(now),
        not_after=not_after
    )


def server_template(common_name: str, not_after: datetime, now: Optional[datetime] = None) -> ServerTemplate:
    """Template of a server leaf, with the common name as its only DNS name"""
    validate_common_name(common_name)
    return ServerTemplate(
        common_name=common_name,
        serial_number=utils.generate_serial_number(),
        not_before=_not_before(now),
        not_after=not_after,
        dns_names=(common_name,)
    )


def client_template(common_name: str, not_after: datetime, now: Optional[datetime] = None) -> ClientTemplate:
    """Template of a client leaf"""
    validate_common_name(common_name)
    return ClientTemplate(
        common_name=common_name,
        serial_number=utils.generate_serial_number(),
        not_before=_not_before(now),
        not_after=not_after
    )


# ============================================
# 🧱 X.509 BUILDER
# ============================================

def subject_name(template: CertificateTemplate) -> x509.Name:
    """Distinguished name of the template subject (CN only)"""
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, template.common_name)])


def to_builder(
        template: CertificateTemplate,
        subject_public_key: rsa.RSAPublicKey,
        issuer_name: x509.Name,
        issuer_public_key: rsa.RSAPublicKey
) -> x509.CertificateBuilder:
    """
    Convert a template into a ready-to-sign X.509 builder

    Args:
        template: Role template
        subject_public_key: Public key certified by the certificate
        issuer_name: Subject of the signing certificate
        issuer_public_key: Public key of the signer (for AuthorityKeyIdentifier)

    Returns:
        CertificateBuilder: Builder with every extension of the role
    """
    usage = template.key_usage

    builder = (
        x509.CertificateBuilder()
        .subject_name(subject_name(template))
        .issuer_name(issuer_name)
        .public_key(subject_public_key)
        .serial_number(template.serial_number)
        .not_valid_before(template.not_before)
        .not_valid_after(template.not_after)
        .add_extension(
            x509.BasicConstraints(ca=template.is_ca, path_length=0 if template.path_len_zero else None),
            critical=True
        )
        .add_extension(
            x509.KeyUsage(
                digital_signature=KeyUsage.DIGITAL_SIGNATURE in usage,
                content_commitment=False,
                key_encipherment=KeyUsage.KEY_ENCIPHERMENT in usage,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=KeyUsage.KEY_CERT_SIGN in usage,
                crl_sign=False,
                encipher_only=False,
                decipher_only=False
            ),
            critical=True
        )
        .add_extension(
            # Sorted for a deterministic encoding
            x509.ExtendedKeyUsage([_EKU_OIDS[eku] for eku in sorted(template.ext_key_usage)]),
            critical=False
        )
        .add_extension(
            x509.SubjectKeyIdentifier.from_public_key(subject_public_key),
            critical=False
        )
        .add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(issuer_public_key),
            critical=False
        )
    )

    # Only server templates carry DNS names
    if isinstance(template, ServerTemplate) and template.dns_names:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(name) for name in template.dns_names]),
            critical=False
        )

    return builder


__all__ = [
    'validate_common_name',
    'root_template', 'server_template', 'client_template',
    'subject_name', 'to_builder'
]
