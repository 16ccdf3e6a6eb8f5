"""Shared fixtures: minted certificates, a scripted log client, wire encoders."""

import asyncio
import base64
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Sequence

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from ct_veilleur import LogSource, RawEntry, TreeHead, X509LeafEntry

# 2023-11-14T22:13:20.123Z
LEAF_TIMESTAMP = 1_700_000_000_123

_KEY = ec.generate_private_key(ec.SECP256R1())


def make_certificate(
    common_name: Optional[str] = "example.org",
    dns_names: Sequence[str] = (),
    issuer_cn: str = "Test CA",
) -> bytes:
    """Mint a DER certificate with the given subject CN and DNS SANs."""
    subject = x509.Name(
        [x509.NameAttribute(NameOID.COMMON_NAME, common_name)] if common_name else []
    )
    issuer = x509.Name([
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Test Org"),
        x509.NameAttribute(NameOID.COMMON_NAME, issuer_cn),
    ])
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(_KEY.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(datetime(2026, 1, 1, tzinfo=timezone.utc))
        .not_valid_after(datetime(2027, 1, 1, tzinfo=timezone.utc))
    )
    if dns_names:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(name) for name in dns_names]),
            critical=False,
        )
    return builder.sign(_KEY, hashes.SHA256()).public_bytes(serialization.Encoding.DER)


def u(value: int, width: int) -> bytes:
    return value.to_bytes(width, "big")


def make_leaf_input(entry_type: int, body: bytes, timestamp: int = LEAF_TIMESTAMP,
                    leaf_type: int = 0, version: int = 0) -> str:
    """Base64 MerkleTreeLeaf as served by get-entries."""
    raw = u(version, 1) + u(leaf_type, 1) + u(timestamp, 8) + u(entry_type, 2) + body
    return base64.b64encode(raw).decode()


def x509_leaf_body(cert: bytes) -> bytes:
    return u(len(cert), 3) + cert + u(0, 2)


def precert_leaf_body(tbs: bytes) -> bytes:
    return b"\x11" * 32 + u(len(tbs), 3) + tbs + u(0, 2)


def make_tile_entry(entry_type: int, cert: bytes, timestamp: int = LEAF_TIMESTAMP) -> bytes:
    """One TileLeaf of a static CT API data tile."""
    head = u(timestamp, 8) + u(entry_type, 2)
    fingerprints = u(32, 2) + b"\x22" * 32
    if entry_type == 0:
        return head + u(len(cert), 3) + cert + u(0, 2) + fingerprints
    tbs = b"tbs"
    return (head + b"\x11" * 32 + u(len(tbs), 3) + tbs + u(0, 2)
            + u(len(cert), 3) + cert + fingerprints)


class FakeLogClient:
    """
    Scripted LogClient.

    `sizes` is consumed one item per get_tree_head() call; exceptions in it are
    raised, and once it runs out the last good size repeats.
    """

    def __init__(
        self,
        sizes: Iterable,
        entry_factory: Callable[[int], RawEntry],
        max_per_call: Optional[int] = None,
        fail_starts: Iterable[int] = (),
    ):
        self.sizes = list(sizes)
        self.entry_factory = entry_factory
        self.max_per_call = max_per_call
        self.fail_starts = set(fail_starts)
        self.fetches: List[tuple] = []
        self.polls = 0
        self.closed = False
        self._last: Optional[int] = None

    async def get_tree_head(self) -> TreeHead:
        self.polls += 1
        item = self.sizes.pop(0) if self.sizes else self._last
        if isinstance(item, Exception):
            raise item
        self._last = item
        return TreeHead(size=item)

    async def get_entries(self, start: int, end: int) -> List[RawEntry]:
        self.fetches.append((start, end))
        if start in self.fail_starts:
            self.fail_starts.discard(start)
            raise ConnectionError(f"connection reset fetching {start}")
        stop = end if self.max_per_call is None else min(end, start + self.max_per_call)
        return [self.entry_factory(index) for index in range(start, stop)]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture(scope="session")
def leaf_der() -> bytes:
    return make_certificate("leaf.example", ["a.example", "b.example"])


@pytest.fixture
def source() -> LogSource:
    return LogSource(url="https://ct.example.com/log/", description="Example Log", operator="Example")


@pytest.fixture
def make_fake_log(leaf_der):
    def factory(sizes, entry_factory=None, **kwargs) -> FakeLogClient:
        if entry_factory is None:
            def entry_factory(index):
                return X509LeafEntry(index=index, data=leaf_der, timestamp=LEAF_TIMESTAMP)
        return FakeLogClient(sizes, entry_factory, **kwargs)

    return factory


@pytest.fixture
def wait_until():
    async def waiter(predicate, timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not reached in time")
            await asyncio.sleep(0.005)

    return waiter
