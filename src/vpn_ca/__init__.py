"""
vpn-ca - Minimal private Certificate Authority
==============================================

Offline issuance tool for a closed network (e.g. a VPN mesh):
- RSA 3072 keys stored as PKCS#8 PEM
- Self-signed root CA (pathlen 0)
- Server and client leaf certificates
- Expirations clamped to the CA expiration

Main modules:
- config: Global configuration
- utils: Utility functions and Rich display
- pem: PEM armor
- keygen: Key generation
- templates: Certificate templates
- validity: Expiration resolution
- signer: Signing and verification
- authority: CA bootstrap, loading and issuance
"""

__version__ = "1.0.0"

from . import config
from . import utils
from .authority import CertificateIssuer, RootCAManager, load_ca, load_ca_certificate, load_certificate
from .errors import VpnCaError
from .keygen import KeyGenerator
from .models import (
    CaState,
    ClientTemplate,
    DefaultExpiry,
    ExplicitExpiry,
    InheritIssuerExpiry,
    IssuedCertificate,
    Role,
    RootTemplate,
    ServerTemplate,
)

__all__ = [
    'config', 'utils',
    'KeyGenerator',
    'RootCAManager', 'CertificateIssuer', 'load_ca', 'load_ca_certificate', 'load_certificate',
    'CaState', 'IssuedCertificate', 'Role',
    'RootTemplate', 'ServerTemplate', 'ClientTemplate',
    'DefaultExpiry', 'InheritIssuerExpiry', 'ExplicitExpiry',
    'VpnCaError',
    '__version__'
]
