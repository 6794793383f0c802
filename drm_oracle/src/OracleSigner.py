"""OracleSigner: Sign and verify oracle payloads with the oracle wallet.

Payloads are signed as Ethereum personal messages (EIP-191), so any wallet
or contract can recover the oracle address from a signature.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from dataclasses import asdict, dataclass
from typing import Any

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from web3 import Web3

logger = logging.getLogger(__name__)


class SignerConfigError(Exception):
    """Raised when signing is attempted without a private key."""

    pass


@dataclass(frozen=True)
class SignedPayload:
    """A payload together with its digest and signature.

    :ivar data: Exact string that was signed.
    :ivar hash: ``0x``-prefixed SHA-256 hex digest of ``data``.
    :ivar signature: ``0x``-prefixed 65-byte signature.
    :ivar oracle: Signer address.
    :ivar timestamp: Unix time of signing.
    """

    data: str
    hash: str
    signature: str
    oracle: str
    timestamp: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SignedPayload:
        return cls(
            data=data["data"],
            hash=data.get("hash", ""),
            signature=data["signature"],
            oracle=data.get("oracle", ""),
            timestamp=data.get("timestamp", 0.0),
        )


def canonical_payload(data: Any) -> str:
    """Render a payload as the string that gets signed.

    Strings are used verbatim; everything else becomes compact JSON.
    """
    if isinstance(data, str):
        return data
    return json.dumps(data, separators=(",", ":"))


def sha256_hex(data: str) -> str:
    return "0x" + hashlib.sha256(data.encode("utf-8")).hexdigest()


class OracleSigner:
    """Holds the oracle identity and, when available, its private key.

    :ivar address: Checksummed oracle address, or None if unconfigured.
    """

    def __init__(self, private_key: str | None = None, address: str | None = None):
        """Initialize the signer.

        :param private_key: Hex private key. Enables signing.
        :param address: Known oracle address for verify-only use. Ignored
            when a private key is given.
        """
        self._account: LocalAccount | None = None
        self.address: str | None = None

        if private_key:
            self._account = Account.from_key(private_key)
            self.address = self._account.address
        elif address:
            self.address = Web3.to_checksum_address(address)

    @property
    def can_sign(self) -> bool:
        return self._account is not None

    def sign_data(self, data: Any) -> SignedPayload:
        """Sign a payload.

        :param data: String or JSON-serialisable value.
        :returns: SignedPayload.
        :raises SignerConfigError: If no private key is configured.
        """
        if self._account is None:
            raise SignerConfigError("Oracle wallet not initialized: PRIVATE_KEY is not set")

        message = canonical_payload(data)
        signed = self._account.sign_message(encode_defunct(text=message))
        return SignedPayload(
            data=message,
            hash=sha256_hex(message),
            signature="0x" + bytes(signed.signature).hex(),
            oracle=self._account.address,
            timestamp=time.time(),
        )

    def verify_signature(self, payload: SignedPayload | dict[str, Any]) -> bool:
        """Check that a payload was signed by this oracle.

        :param payload: SignedPayload or its dict form.
        :returns: True if the recovered signer matches the oracle address.
        """
        if self.address is None:
            logger.error("Signature verification failed: oracle address unknown")
            return False
        try:
            if isinstance(payload, dict):
                payload = SignedPayload.from_dict(payload)
            recovered = Account.recover_message(
                encode_defunct(text=payload.data), signature=payload.signature
            )
        except Exception as e:
            logger.error(f"Signature verification failed: {e}")
            return False
        return recovered.lower() == self.address.lower()
