"""
Wallet capabilities consumed by the Canine SDK.

The SDK only needs the current address, a public key to wrap node keys for,
a way to look up someone else's public key, and wrap/unwrap of an AesBundle.
"""

from typing import TYPE_CHECKING, Optional, Protocol

import nacl.encoding
import nacl.exceptions
import nacl.hash
import nacl.public
from substrateinterface import Keypair

from canine_sdk.errors import CanineDecodeError
from canine_sdk.models import AesBundle

if TYPE_CHECKING:
    from canine_sdk.chain import ChainClient


class WalletHandler(Protocol):
    address: str

    def get_pub_key(self) -> str:
        ...

    async def find_pub_key(self, address: str) -> str:
        ...

    def wrap_key(self, pub_key: str, aes: AesBundle) -> str:
        ...

    def unwrap_key(self, wrapped: str) -> AesBundle:
        ...


class LocalWallet:
    """
    Wallet backed by an in-memory Curve25519 key.

    Wrapped keys are the hex encoded sealed-box ciphertexts of the key and
    the iv, joined by ``|``.
    """

    def __init__(
        self,
        address: str,
        private_key: nacl.public.PrivateKey,
        chain: Optional["ChainClient"] = None,
    ):
        self.address = address
        self._private_key = private_key
        self._chain = chain

    @classmethod
    def from_mnemonic(
        cls, mnemonic: str, chain: Optional["ChainClient"] = None
    ) -> "LocalWallet":
        """
        Build a wallet from a mnemonic phrase.

        The account address comes from the mnemonic's keypair, and the
        wrapping key is derived from that keypair's private key.
        """
        keypair = Keypair.create_from_mnemonic(mnemonic)
        seed = nacl.hash.blake2b(
            keypair.private_key, digest_size=32, encoder=nacl.encoding.RawEncoder
        )
        return cls(keypair.ss58_address, nacl.public.PrivateKey(seed), chain)

    def get_pub_key(self) -> str:
        return self._private_key.public_key.encode(nacl.encoding.HexEncoder).decode("ascii")

    async def find_pub_key(self, address: str) -> str:
        if address == self.address:
            return self.get_pub_key()
        if self._chain is None:
            raise ValueError(f"Cannot look up the public key of {address} without a chain client")
        return await self._chain.query_pub_key(address)

    def wrap_key(self, pub_key: str, aes: AesBundle) -> str:
        box = nacl.public.SealedBox(
            nacl.public.PublicKey(pub_key.encode("ascii"), encoder=nacl.encoding.HexEncoder)
        )
        return "|".join(box.encrypt(part).hex() for part in (aes.key, aes.iv))

    def unwrap_key(self, wrapped: str) -> AesBundle:
        """
        Recover an AesBundle wrapped for this wallet.

        Raises:
            CanineDecodeError: If the value is malformed or not addressed to this wallet
        """
        if not isinstance(wrapped, str) or wrapped.count("|") != 1:
            raise CanineDecodeError("Malformed wrapped key")
        box = nacl.public.SealedBox(self._private_key)
        try:
            key, iv = (box.decrypt(bytes.fromhex(part)) for part in wrapped.split("|"))
        except (nacl.exceptions.CryptoError, ValueError) as e:
            raise CanineDecodeError(f"Could not unwrap key: {e}")
        return AesBundle(key=key, iv=iv)
