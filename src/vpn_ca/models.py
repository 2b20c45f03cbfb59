"""
Data models of the CA
Certificate templates (one variant per role), expiration requests and CA state
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import ClassVar, FrozenSet, Tuple, Union
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import rsa


class Role(str, Enum):
    """Role of a certificate"""
    ROOT = "root"
    SERVER = "server"
    CLIENT = "client"


class KeyUsage(str, Enum):
    """Key usage bits set by this CA"""
    DIGITAL_SIGNATURE = "digital_signature"
    KEY_ENCIPHERMENT = "key_encipherment"
    KEY_CERT_SIGN = "key_cert_sign"


class ExtKeyUsage(str, Enum):
    """Extended key usages set by this CA"""
    SERVER_AUTH = "server_auth"
    CLIENT_AUTH = "client_auth"


# ============================================
# 📜 CERTIFICATE TEMPLATES
# ============================================

@dataclass(frozen=True)
class _BaseTemplate:
    """
    Unsigned certificate descriptor, common part

    The role-dependent fields (key usages, CA flag, path length) are class
    constants of each variant, so a template can only carry the fields of
    its own role.
    """
    common_name: str
    serial_number: int
    not_before: datetime
    not_after: datetime

    role: ClassVar[Role]
    key_usage: ClassVar[FrozenSet[KeyUsage]]
    ext_key_usage: ClassVar[FrozenSet[ExtKeyUsage]]
    is_ca: ClassVar[bool] = False
    path_len_zero: ClassVar[bool] = False

    def __post_init__(self):
        if self.serial_number < 0:
            raise ValueError("serial number must be non-negative")
        if self.not_before >= self.not_after:
            raise ValueError("notBefore must be before notAfter")


@dataclass(frozen=True)
class RootTemplate(_BaseTemplate):
    """Self-signed CA; dual purpose, no intermediate CA allowed below it"""
    role: ClassVar[Role] = Role.ROOT
    key_usage: ClassVar[FrozenSet[KeyUsage]] = frozenset({
        KeyUsage.DIGITAL_SIGNATURE, KeyUsage.KEY_CERT_SIGN
    })
    ext_key_usage: ClassVar[FrozenSet[ExtKeyUsage]] = frozenset({
        ExtKeyUsage.SERVER_AUTH, ExtKeyUsage.CLIENT_AUTH
    })
    is_ca: ClassVar[bool] = True
    path_len_zero: ClassVar[bool] = True


@dataclass(frozen=True)
class ServerTemplate(_BaseTemplate):
    """Server leaf; the common name is repeated as DNS subject alternative name"""
    dns_names: Tuple[str, ...] = ()

    role: ClassVar[Role] = Role.SERVER
    key_usage: ClassVar[FrozenSet[KeyUsage]] = frozenset({
        KeyUsage.DIGITAL_SIGNATURE, KeyUsage.KEY_ENCIPHERMENT
    })
    ext_key_usage: ClassVar[FrozenSet[ExtKeyUsage]] = frozenset({ExtKeyUsage.SERVER_AUTH})


@dataclass(frozen=True)
class ClientTemplate(_BaseTemplate):
    """Client leaf"""
    role: ClassVar[Role] = Role.CLIENT
    key_usage: ClassVar[FrozenSet[KeyUsage]] = frozenset({KeyUsage.DIGITAL_SIGNATURE})
    ext_key_usage: ClassVar[FrozenSet[ExtKeyUsage]] = frozenset({ExtKeyUsage.CLIENT_AUTH})


CertificateTemplate = Union[RootTemplate, ServerTemplate, ClientTemplate]
LeafTemplate = Union[ServerTemplate, ClientTemplate]


# ============================================
# 📅 EXPIRATION REQUESTS
# ============================================

@dataclass(frozen=True)
class DefaultExpiry:
    """No expiration requested: apply the policy default"""


@dataclass(frozen=True)
class InheritIssuerExpiry:
    """Expire exactly when the CA expires"""


@dataclass(frozen=True)
class ExplicitExpiry:
    """Absolute expiration, as an RFC 3339 string"""
    value: str


ExpirationRequest = Union[DefaultExpiry, InheritIssuerExpiry, ExplicitExpiry]


# ============================================
# 👑 CA STATE
# ============================================

@dataclass(frozen=True)
class CaState:
    """
    CA signing key and certificate, loaded once per run

    Passed explicitly to every signing operation and never modified.
    """
    private_key: rsa.RSAPrivateKey
    certificate: x509.Certificate
    ca_dir: Path

    @property
    def public_key(self) -> rsa.RSAPublicKey:
        return self.certificate.public_key()

    @property
    def subject(self) -> x509.Name:
        return self.certificate.subject

    @property
    def not_after(self) -> datetime:
        return self.certificate.not_valid_after_utc


@dataclass(frozen=True)
class IssuedCertificate:
    """Result of a successful issuance"""
    role: Role
    certificate: x509.Certificate
    key_path: Path
    cert_path: Path


__all__ = [
    'Role', 'KeyUsage', 'ExtKeyUsage',
    'RootTemplate', 'ServerTemplate', 'ClientTemplate', 'CertificateTemplate', 'LeafTemplate',
    'DefaultExpiry', 'InheritIssuerExpiry', 'ExplicitExpiry', 'ExpirationRequest',
    'CaState', 'IssuedCertificate'
]
