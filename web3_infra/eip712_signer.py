"""Signer capability — async signing of precomputed digests.

``Signer`` is the interface the signing coordinator consumes.
``LocalAccountSigner`` holds a private key and signs with ``eth_account``.
Signing is CPU-bound (elliptic-curve math), so it is offloaded to a
``ProcessPoolExecutor`` to avoid blocking the asyncio event loop.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from concurrent.futures import ProcessPoolExecutor
from typing import Any

import structlog
from eth_account import Account
from eth_account.messages import encode_defunct

from config.settings import Settings
from core.errors import SignerUnavailableError

from .digest import SigningMode

logger = structlog.get_logger("web3_infra.eip712_signer")


class Signer(ABC):
    """External signing capability.

    Implementations may block on I/O (hardware wallet, remote KMS); the
    coordinator awaits them with the caller's timeout and never retries.
    """

    @property
    @abstractmethod
    def address(self) -> str:
        """Checksummed address whose key produces the signatures."""

    @abstractmethod
    async def sign(self, digest: bytes, mode: SigningMode) -> bytes:
        """Sign a 32-byte *digest* and return the raw 65-byte signature.

        ``PERSONAL_MESSAGE`` signs ``"\\x19Ethereum Signed Message:\\n32" ||
        digest``; ``STRUCTURED_DATA`` signs *digest* directly.
        """


# ── Module-level signing function (must be picklable for multiprocessing) ──


def _sign_digest_sync(digest: bytes, mode: SigningMode, private_key: str) -> bytes:
    """Synchronous signing executed in a worker process."""
    account = Account.from_key(private_key)
    if mode is SigningMode.PERSONAL_MESSAGE:
        signed = account.sign_message(encode_defunct(primitive=digest))
    elif mode is SigningMode.STRUCTURED_DATA:
        signed = account.unsafe_sign_hash(digest)
    else:
        raise ValueError(f"unknown signing mode: {mode!r}")
    return bytes(signed.signature)


# ── Local key signer ─────────────────────────────────────────────────


class LocalAccountSigner(Signer):
    """Async-safe signer for a local private key backed by a process pool.

    Parameters
    ----------
    private_key:
        Hex-encoded private key (``0x`` prefix optional).
    max_workers:
        Number of processes in the signing pool.  Defaults to 2.
    """

    def __init__(self, private_key: str, max_workers: int = 2) -> None:
        # raises on a malformed key
        self._address = Account.from_key(private_key).address
        self._private_key = private_key
        self._max_workers = max_workers
        self._pool: ProcessPoolExecutor | None = None

    @classmethod
    def from_settings(cls, cfg: Settings) -> LocalAccountSigner:
        """Signer for ``PRIVATE_KEY`` with a ``SIGNER_MAX_WORKERS`` pool.

        Raises
        ------
        SignerUnavailableError
            If ``PRIVATE_KEY`` is empty, or ``TAKER_ADDRESS`` is set to an
            address other than the key's.
        """
        if not cfg.PRIVATE_KEY:
            raise SignerUnavailableError("PRIVATE_KEY is not configured")
        signer = cls(cfg.PRIVATE_KEY, max_workers=cfg.SIGNER_MAX_WORKERS)
        if cfg.TAKER_ADDRESS and cfg.TAKER_ADDRESS.lower() != signer.address.lower():
            raise SignerUnavailableError(
                f"TAKER_ADDRESS {cfg.TAKER_ADDRESS} does not match the key's address {signer.address}"
            )
        return signer

    @property
    def address(self) -> str:
        return self._address

    # ── Lifecycle ────────────────────────────────────────────────

    def start(self) -> None:
        """Start the process pool.  Idempotent."""
        if self._pool is None:
            self._pool = ProcessPoolExecutor(max_workers=self._max_workers)
            logger.info(
                "eip712_signer.started",
                address=self._address,
                max_workers=self._max_workers,
            )

    def shutdown(self, wait: bool = True) -> None:
        """Shutdown the process pool."""
        if self._pool is not None:
            self._pool.shutdown(wait=wait)
            self._pool = None
            logger.info("eip712_signer.shutdown")

    # ── Signing ──────────────────────────────────────────────────

    async def sign(self, digest: bytes, mode: SigningMode) -> bytes:
        """Sign *digest* asynchronously (offloaded to the process pool).

        Raises
        ------
        SignerUnavailableError
            If the signer has not been started.
        ValueError
            If *digest* is not 32 bytes.
        """
        if self._pool is None:
            raise SignerUnavailableError(
                "LocalAccountSigner not started — call start() first"
            )
        if len(digest) != 32:
            raise ValueError(f"digest must be 32 bytes, got {len(digest)}")

        loop = asyncio.get_running_loop()
        signature = await loop.run_in_executor(
            self._pool,
            _sign_digest_sync,
            bytes(digest),
            mode,
            self._private_key,
        )

        logger.debug(
            "eip712_signer.signed",
            digest="0x" + digest.hex(),
            mode=mode.value,
        )
        return signature

    # ── Context manager ──────────────────────────────────────────

    async def __aenter__(self) -> LocalAccountSigner:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.shutdown(wait=True)
