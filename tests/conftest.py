"""Pytest configuration and shared fixtures for vpn-ca tests."""

from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from vpn_ca import config
from vpn_ca.authority import RootCAManager, load_ca
from vpn_ca.keygen import KeyGenerator


@pytest.fixture
def fixed_now() -> datetime:
    """A fixed issuance time."""
    return datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def key_gen() -> KeyGenerator:
    """Default key generator (RSA 3072, no progress bar)."""
    return KeyGenerator()


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    """An in-memory RSA key, generated once per session."""
    return rsa.generate_private_key(public_exponent=65537, key_size=config.RSA_KEY_SIZE)


@pytest.fixture(scope="session")
def key_pem(rsa_key) -> bytes:
    """rsa_key as PKCS#8 PEM."""
    return rsa_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )


@pytest.fixture(scope="session")
def cert_pem(rsa_key) -> bytes:
    """A throwaway self-signed certificate as PEM."""
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "pem-fixture")])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(rsa_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + timedelta(days=1))
        .sign(rsa_key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.PEM)


@pytest.fixture(scope="module")
def ca_dir(tmp_path_factory):
    """A bootstrapped CA directory with its server/ and client/ subdirectories.

    Shared by the tests of a module: 3072-bit key generation is slow, so
    tests using it must pick distinct common names.
    """
    directory = tmp_path_factory.mktemp("ca")
    RootCAManager().create_root_ca(directory, "Test Root CA")
    (directory / config.SERVER_DIR).mkdir()
    (directory / config.CLIENT_DIR).mkdir()
    return directory


@pytest.fixture(scope="module")
def ca_state(ca_dir):
    """The loaded state of the shared CA."""
    return load_ca(ca_dir)
