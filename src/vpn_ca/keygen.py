"""
RSA key generator
Generates, stores and loads the private keys of the CA and of its leaves
"""

import logging
from pathlib import Path
from cryptography.exceptions import InternalError, UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives import serialization
from tqdm import tqdm

from . import config
from . import pem
from .errors import AlreadyExistsError, CryptoFailureError

logger = logging.getLogger(__name__)


class KeyGenerator:
    """
    Generates RSA key pairs and persists them as PKCS#8 PEM files

    Args:
        key_size: RSA modulus size in bits (at least MIN_RSA_KEY_SIZE)
        show_progress: Display a progress bar while generating
    """

    def __init__(self, key_size: int = config.RSA_KEY_SIZE, show_progress: bool = False):
        if key_size < config.MIN_RSA_KEY_SIZE:
            raise ValueError(
                f"RSA key size {key_size} is too small, minimum is {config.MIN_RSA_KEY_SIZE}"
            )
        self.key_size = key_size
        self.show_progress = show_progress

    # ============================================
    # 🔐 RSA GENERATION
    # ============================================

    def generate_rsa_key(self) -> rsa.RSAPrivateKey:
        """
        Generate an RSA private key from the OS random source

        Returns:
            RSAPrivateKey: Fresh key

        Raises:
            CryptoFailureError: If the backend fails
        """
        logger.debug("generating RSA-%d key", self.key_size)

        with tqdm(total=1, desc=f"RSA {self.key_size}", disable=not self.show_progress,
                  bar_format="{l_bar}{bar}| {n_fmt}/{total_fmt}") as pbar:
            try:
                private_key = rsa.generate_private_key(
                    public_exponent=config.RSA_PUBLIC_EXPONENT,
                    key_size=self.key_size
                )
            except (ValueError, InternalError, UnsupportedAlgorithm) as e:
                raise CryptoFailureError(f"unable to generate key: {e}", step="generate key") from e
            pbar.update(1)

        return private_key

    # ============================================
    # 💾 GENERATE AND STORE
    # ============================================

    def generate_key(self, target_path: Path) -> rsa.RSAPrivateKey:
        """
        Generate a key and write it to a new file

        The key is serialized as PKCS#8 PEM ("PRIVATE KEY") and
        written with owner-only permissions. The file must not exist.

        Args:
            target_path: Path of the key file

        Returns:
            RSAPrivateKey: The generated key

        Raises:
            AlreadyExistsError: If target_path exists (checked before generating)
            CryptoFailureError: If generation or encoding fails
            StorageError: If the file cannot be written
        """
        if target_path.exists():
            raise AlreadyExistsError("key file already exists", step="generate key", path=target_path)

        private_key = self.generate_rsa_key()

        try:
            pem_data = private_key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption()
            )
        except ValueError as e:
            raise CryptoFailureError(f"unable to convert key to PEM: {e}", step="encode key") from e

        pem.write_pem(target_path, pem_data, config.PEM_PRIVATE_KEY, config.PRIVATE_KEY_PERMISSIONS)
        return private_key

    # ============================================
    # 📂 LOADING
    # ============================================

    @staticmethod
    def load_private_key(filepath: Path) -> rsa.RSAPrivateKey:
        """
        Load an unencrypted PKCS#8 private key

        Args:
            filepath: PEM file with a "PRIVATE KEY" block

        Returns:
            RSAPrivateKey: The key

        Raises:
            MalformedPemError / WrongPemTypeError: If the armor is wrong
            CryptoFailureError: If the payload is not an RSA PKCS#8 key
        """
        der = pem.read_pem(filepath, config.PEM_PRIVATE_KEY)

        try:
            private_key = serialization.load_der_private_key(der, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise CryptoFailureError(f"unable to parse private key: {e}", step="load key", path=filepath) from e

        if not isinstance(private_key, rsa.RSAPrivateKey):
            raise CryptoFailureError("private key is not an RSA key", step="load key", path=filepath)

        return private_key


__all__ = ['KeyGenerator']
