"""
Symmetric encryption of node contents and file bytes.

Both use XSalsa20-Poly1305 (NaCl secretbox). Node contents are sealed under a
fresh key every time they are written, with the nonce kept as the node's iv
in the permission block next to the key, so node ciphertexts carry no nonce
prefix. File bytes may be re-encrypted under a kept key when a file is
updated, so each file ciphertext gets a random nonce stored in front of it.
"""

import base64
import binascii

import nacl.exceptions
import nacl.secret
import nacl.utils

from canine_sdk.compression import compress_data, decompress_data
from canine_sdk.errors import CanineDecodeError
from canine_sdk.models import AesBundle


def gen_aes() -> AesBundle:
    """Generate a fresh key and nonce."""
    return AesBundle(
        key=nacl.utils.random(nacl.secret.SecretBox.KEY_SIZE),
        iv=nacl.utils.random(nacl.secret.SecretBox.NONCE_SIZE),
    )


def encrypt_bytes(data: bytes, aes: AesBundle) -> bytes:
    box = nacl.secret.SecretBox(aes.key)
    return box.encrypt(data, aes.iv).ciphertext


def decrypt_bytes(data: bytes, aes: AesBundle) -> bytes:
    """
    Decrypt bytes produced by encrypt_bytes.

    Raises:
        CanineDecodeError: If the key does not match or the data is corrupted
    """
    try:
        box = nacl.secret.SecretBox(aes.key)
        return box.decrypt(data, aes.iv)
    except (nacl.exceptions.CryptoError, ValueError, TypeError) as e:
        raise CanineDecodeError(f"Decryption failed: {e}. Incorrect key or corrupted data?")


def encrypt_file(data: bytes, aes: AesBundle) -> bytes:
    """Encrypt file bytes under aes.key with a random nonce prepended."""
    box = nacl.secret.SecretBox(aes.key)
    return bytes(box.encrypt(data))


def decrypt_file(data: bytes, aes: AesBundle) -> bytes:
    """
    Decrypt bytes produced by encrypt_file.

    Raises:
        CanineDecodeError: If the key does not match or the data is corrupted
    """
    try:
        box = nacl.secret.SecretBox(aes.key)
        return box.decrypt(data)
    except (nacl.exceptions.CryptoError, ValueError, TypeError) as e:
        raise CanineDecodeError(f"Decryption failed: {e}. Incorrect key or corrupted data?")


def compress_encrypt_string(text: str, aes: AesBundle) -> str:
    sealed = encrypt_bytes(compress_data(text).encode("utf-8"), aes)
    return base64.b64encode(sealed).decode("ascii")


def decrypt_decompress_string(text: str, aes: AesBundle) -> str:
    try:
        sealed = base64.b64decode(text)
    except (binascii.Error, ValueError) as e:
        raise CanineDecodeError(f"Contents are not base64: {e}")
    plain = decrypt_bytes(sealed, aes)
    try:
        return decompress_data(plain.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise CanineDecodeError(f"Decrypted contents are not text: {e}")
