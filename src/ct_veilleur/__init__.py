"""
Certificate Transparency Log Tailer
Follows classic and tiled CT logs from their current head and reports every
new certificate as it is appended.
"""

import asyncio
import base64
import inspect
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Union, cast

import httpx
from cryptography import x509
from cryptography.hazmat.backends import default_backend

from .binary_reader import BinaryReader, DataType, Endianness

__version__ = "0.1.0"

# Create module logger
logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = f"CT-Veilleur/{__version__}"


class CTVeilleurError(Exception):
    """Base class for errors raised by this package"""


class ClientInitError(CTVeilleurError):
    """A log client could not be built for an endpoint"""


class InitialHeadError(CTVeilleurError):
    """The first tree head of a log could not be fetched"""


class NoLogSourcesError(CTVeilleurError, ValueError):
    """Nothing to monitor"""


class LogListError(CTVeilleurError):
    """The log list could not be fetched or decoded"""


class EntryType(IntEnum):
    """CT log entry types"""

    X509_ENTRY = 0
    PRECERT_ENTRY = 1


class SkipReason(Enum):
    """Why an entry produced no certificate record"""

    PARSE_FAILED = "parse_failed"
    MISSING_TIMESTAMP = "missing_timestamp"
    INVALID_TIMESTAMP = "invalid_timestamp"
    PRECERTIFICATE = "precertificate"
    UNKNOWN_TYPE = "unknown_type"


class MonitorState(Enum):
    """Where a LogMonitor is in its lifecycle"""

    INITIALIZING = "initializing"
    WAITING = "waiting"
    FETCHING = "fetching"
    STOPPED = "stopped"


@dataclass(frozen=True)
class LogSource:
    """A CT log selected for monitoring"""

    url: str
    description: str
    operator: str = ""
    tiled: bool = False


@dataclass
class TreeHead:
    """Current size of a log. Root hash and signature are carried, not checked."""

    size: int
    timestamp: Optional[int] = None
    root_hash: Optional[str] = None


@dataclass(frozen=True)
class X509LeafEntry:
    index: int
    data: bytes  # DER encoded certificate
    timestamp: Optional[int] = None


@dataclass(frozen=True)
class PrecertLeafEntry:
    index: int
    data: bytes  # TBSCertificate (classic) or pre-certificate (tiled)
    timestamp: Optional[int] = None


@dataclass(frozen=True)
class UnknownLeafEntry:
    index: int
    data: bytes
    timestamp: Optional[int] = None
    entry_type: Optional[int] = None


RawEntry = Union[X509LeafEntry, PrecertLeafEntry, UnknownLeafEntry]


@dataclass(frozen=True)
class CertificateSummary:
    """What gets reported for one logged certificate"""

    timestamp: datetime
    issuer: str
    names: str

    @property
    def timestamp_rfc3339(self) -> str:
        return self.timestamp.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class CertificateRecord:
    """A summary together with where it was found"""

    source: LogSource
    index: int
    summary: CertificateSummary

    def to_line(self) -> str:
        return (
            f"Timestamp: {self.summary.timestamp_rfc3339}, "
            f"Issuer: {self.summary.issuer}, "
            f"Names: {self.summary.names}"
        )


ClassifyResult = Union[CertificateSummary, SkipReason]

RecordSink = Union[
    Callable[[CertificateRecord], None], Callable[[CertificateRecord], Awaitable[None]]
]


@dataclass
class MonitorConfig:
    """Tuning knobs shared by all monitors"""

    poll_interval: float = 10.0
    batch_size: int = 1000
    max_backoff: float = 300.0
    timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT


@dataclass
class MonitorStats:
    """Counters for one monitored log"""

    entries_processed: int = 0
    records_emitted: int = 0
    skipped: Counter = field(default_factory=Counter)
    poll_errors: int = 0
    fetch_errors: int = 0
    tree_shrinks: int = 0


class LogClient(Protocol):
    """What a monitor needs from a log endpoint"""

    async def get_tree_head(self) -> TreeHead: ...

    async def get_entries(self, start: int, end: int) -> List[RawEntry]: ...

    async def close(self) -> None: ...


def _http_client(source: LogSource, config: MonitorConfig,
                 transport: Optional[httpx.AsyncBaseTransport]) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=source.url,
        timeout=config.timeout,
        headers={"User-Agent": config.user_agent},
        transport=transport or httpx.AsyncHTTPTransport(
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
        ),
    )


class ClassicLogClient:
    """Client for interacting with classic (RFC 6962) CT logs"""

    def __init__(
        self,
        source: LogSource,
        config: Optional[MonitorConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.source = source
        self.config = config or MonitorConfig()
        self._client = _http_client(source, self.config, transport)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the HTTP client"""
        await self._client.aclose()

    async def get_tree_head(self) -> TreeHead:
        """Get the Signed Tree Head. The signature is not verified."""
        response = await self._client.get("ct/v1/get-sth")
        response.raise_for_status()
        data = cast(Dict[str, Any], response.json())
        try:
            size = int(data["tree_size"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Malformed get-sth response from {self.source.url}: {e}")
        if size < 0:
            raise ValueError(f"Negative tree size from {self.source.url}: {size}")
        return TreeHead(
            size=size,
            timestamp=data.get("timestamp"),
            root_hash=data.get("sha256_root_hash"),
        )

    async def get_entries(self, start: int, end: int) -> List[RawEntry]:
        """
        Get entries in the half-open range [start, end).

        The log may return fewer entries than asked for; it never gets to
        return more.
        """
        if start < 0 or end <= start:
            raise ValueError(f"Invalid range: [{start}, {end})")

        # get-entries takes an inclusive end
        params = {"start": start, "end": end - 1}
        response = await self._client.get("ct/v1/get-entries", params=params)
        response.raise_for_status()
        data = cast(Dict[str, Any], response.json())
        raw_entries = data.get("entries")
        if not isinstance(raw_entries, list):
            raise ValueError(f"Malformed get-entries response from {self.source.url}")

        raw_entries = raw_entries[: end - start]
        return [
            self.decode_entry(start + i, entry_data)
            for i, entry_data in enumerate(raw_entries)
        ]

    def decode_entry(self, index: int, entry_data: Dict[str, Any]) -> RawEntry:
        """
        Decode one get-entries item.

        Anything that cannot be decoded comes back as an UnknownLeafEntry so
        positions stay aligned with log indices.
        """
        try:
            leaf_input = base64.b64decode(entry_data["leaf_input"])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Undecodable leaf_input at {index} from {self.source.url}: {e}")
            return UnknownLeafEntry(index=index, data=b"")

        try:
            return self._decode_merkle_tree_leaf(index, leaf_input)
        except ValueError as e:
            logger.warning(f"Malformed leaf {index} from {self.source.url}: {e}")
            return UnknownLeafEntry(index=index, data=leaf_input)

    @staticmethod
    def _decode_merkle_tree_leaf(index: int, leaf_input: bytes) -> RawEntry:
        # Format: version(1) + leaf_type(1) + timestamp(8) + entry_type(2) + ...
        reader = BinaryReader(leaf_input, Endianness.BIG)

        version = reader.read(DataType.UINT, 1)
        if version != 0:
            raise ValueError(f"Invalid MerkleTreeLeaf version: {version}")

        # Only timestamped_entry (0) carries a timestamp and a certificate
        leaf_type = reader.read(DataType.UINT, 1)
        if leaf_type != 0:
            return UnknownLeafEntry(index=index, data=leaf_input)

        timestamp = reader.read(DataType.UINT, 8)
        entry_type = reader.read(DataType.UINT, 2)

        if entry_type == EntryType.X509_ENTRY:
            cert_len = reader.read(DataType.UINT, 3)
            cert_data = reader.read(DataType.BYTES, cert_len)
            return X509LeafEntry(index=index, data=cert_data, timestamp=timestamp)

        if entry_type == EntryType.PRECERT_ENTRY:
            reader.skip(32)  # issuer_key_hash
            tbs_len = reader.read(DataType.UINT, 3)
            tbs_data = reader.read(DataType.BYTES, tbs_len)
            return PrecertLeafEntry(index=index, data=tbs_data, timestamp=timestamp)

        return UnknownLeafEntry(
            index=index, data=leaf_input, timestamp=timestamp, entry_type=entry_type
        )


class TiledLogClient:
    """Client for interacting with tiled (static CT API) logs"""

    TILE_SIZE = 256

    def __init__(
        self,
        source: LogSource,
        config: Optional[MonitorConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.source = source
        self.config = config or MonitorConfig()
        self._client = _http_client(source, self.config, transport)
        self._tree_size: Optional[int] = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the HTTP client"""
        await self._client.aclose()

    async def get_tree_head(self) -> TreeHead:
        """Read the size from the log checkpoint. The note signature is not verified."""
        response = await self._client.get("checkpoint")
        response.raise_for_status()

        lines = response.text.strip().split("\n")
        if len(lines) < 3:
            raise ValueError(
                f"Invalid checkpoint format: expected at least 3 lines, got {len(lines)}"
            )

        size = int(lines[1])
        if size < 0:
            raise ValueError(f"Negative tree size from {self.source.url}: {size}")
        self._tree_size = size
        return TreeHead(size=size, root_hash=lines[2])

    @staticmethod
    def encode_tile_path(index: int) -> str:
        """
        Encode a tile index into the proper path format.
        Example: 1234567 -> x001/x234/567
        """
        if index == 0:
            return "000"

        groups = []
        n = index
        while n > 0:
            groups.append(n % 1000)
            n //= 1000

        groups.reverse()

        parts = [f"x{g:03d}" for g in groups[:-1]] + [f"{groups[-1]:03d}"]
        return "/".join(parts)

    async def fetch_tile(self, tile_index: int, partial_width: Optional[int] = None) -> bytes:
        tile_path = self.encode_tile_path(tile_index)
        if partial_width is not None:
            if not (1 <= partial_width <= 255):
                raise ValueError(
                    f"Partial tile width must be between 1 and 255, got {partial_width}"
                )
            tile_path = f"{tile_path}.p/{partial_width}"

        response = await self._client.get(f"tile/data/{tile_path}")
        response.raise_for_status()
        return response.content

    async def get_entries(self, start: int, end: int) -> List[RawEntry]:
        """Get entries in the half-open range [start, end) from data tiles."""
        if start < 0 or end <= start:
            raise ValueError(f"Invalid range: [{start}, {end})")
        if self._tree_size is None:
            await self.get_tree_head()
        tree_size = cast(int, self._tree_size)
        if end > tree_size:
            raise ValueError(f"Range end {end} is beyond the checkpoint size {tree_size}")

        entries: List[RawEntry] = []
        first_tile = start // self.TILE_SIZE
        last_tile = (end - 1) // self.TILE_SIZE
        for tile_index in range(first_tile, last_tile + 1):
            base = tile_index * self.TILE_SIZE
            width = min(self.TILE_SIZE, tree_size - base)
            partial = width if width < self.TILE_SIZE else None
            data = await self.fetch_tile(tile_index, partial_width=partial)
            for entry in self.parse_tile_data(base, data):
                if entry.index < start:
                    continue
                if entry.index >= end:
                    break
                entries.append(entry)
            if len(entries) < min(end, base + width) - start:
                # Short tile, let the caller resume from what we have
                break

        return entries

    @staticmethod
    def parse_tile_data(base_index: int, data: bytes) -> List[RawEntry]:
        """Parse a data tile into leaf entries numbered from base_index"""
        reader = BinaryReader(data, Endianness.BIG)
        leaves: List[RawEntry] = []

        while reader.remaining >= 10:  # Minimum header size
            index = base_index + len(leaves)
            timestamp = reader.read(DataType.UINT, 8)
            entry_type = reader.read(DataType.UINT, 2)

            try:
                if entry_type == EntryType.X509_ENTRY:
                    cert_len = reader.read(DataType.UINT, 3)
                    cert_data = reader.read(DataType.BYTES, cert_len)
                    ext_len = reader.read(DataType.UINT, 2)
                    reader.skip(ext_len)
                    leaf: RawEntry = X509LeafEntry(
                        index=index, data=cert_data, timestamp=timestamp
                    )

                elif entry_type == EntryType.PRECERT_ENTRY:
                    reader.skip(32)  # issuer_key_hash
                    tbs_len = reader.read(DataType.UINT, 3)
                    reader.skip(tbs_len)
                    ext_len = reader.read(DataType.UINT, 2)
                    reader.skip(ext_len)
                    cert_len = reader.read(DataType.UINT, 3)
                    cert_data = reader.read(DataType.BYTES, cert_len)
                    leaf = PrecertLeafEntry(index=index, data=cert_data, timestamp=timestamp)

                else:
                    raise ValueError(f"Unknown entry type in tile: {entry_type}")

                # Chain fingerprints (32 bytes each) are not needed
                fp_len = reader.read(DataType.UINT, 2)
                reader.skip(fp_len)
            except ValueError as e:
                # Entry lengths are unknowable past this point
                logger.warning(f"Truncated tile data at entry {index}: {e}")
                break

            leaves.append(leaf)

        return leaves


ClientFactory = Callable[[LogSource, MonitorConfig], LogClient]


def create_log_client(
    source: LogSource,
    config: Optional[MonitorConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Union[ClassicLogClient, TiledLogClient]:
    """Build the right client for a log, or raise ClientInitError"""
    try:
        url = httpx.URL(source.url)
    except (httpx.InvalidURL, TypeError) as e:
        raise ClientInitError(f"Invalid log URL {source.url!r}: {e}") from e
    if url.scheme not in ("http", "https") or not url.host:
        raise ClientInitError(f"Log URL must be absolute http(s): {source.url!r}")

    if source.tiled:
        return TiledLogClient(source, config, transport)
    return ClassicLogClient(source, config, transport)


class CertificateParser:
    """Parse certificates from CT log entries"""

    @staticmethod
    def parse_x509_certificate(cert_data: bytes) -> x509.Certificate:
        """Parse X.509 certificate from DER bytes"""
        return x509.load_der_x509_certificate(cert_data, default_backend())

    @staticmethod
    def common_name(cert: x509.Certificate) -> str:
        cn_attr = cert.subject.get_attributes_for_oid(x509.oid.NameOID.COMMON_NAME)
        if not cn_attr:
            return ""
        cn_value = cn_attr[0].value
        if isinstance(cn_value, bytes):
            cn_value = cn_value.decode("utf-8", errors="ignore")
        return str(cn_value)

    @staticmethod
    def dns_names(cert: x509.Certificate) -> List[str]:
        """DNS subject alternative names, in certificate order"""
        try:
            san_ext = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
        except x509.ExtensionNotFound:
            return []
        return san_ext.value.get_values_for_type(x509.DNSName)

    @classmethod
    def display_names(cls, cert: x509.Certificate) -> str:
        """DNS names joined with ", ", falling back to the subject CN"""
        names = cls.dns_names(cert)
        if names:
            return ", ".join(names)
        return cls.common_name(cert)


def timestamp_from_millis(millis: int) -> datetime:
    """Convert a CT millisecond timestamp to an aware UTC datetime"""
    return datetime.fromtimestamp(millis // 1000, tz=timezone.utc)


class LeafClassifier:
    """Turns raw leaves into certificate summaries or skip reasons"""

    def __init__(self, parser: type = CertificateParser):
        self.parser = parser

    def classify(self, entry: RawEntry) -> ClassifyResult:
        if isinstance(entry, PrecertLeafEntry):
            return SkipReason.PRECERTIFICATE
        if not isinstance(entry, X509LeafEntry):
            return SkipReason.UNKNOWN_TYPE

        try:
            cert = self.parser.parse_x509_certificate(entry.data)
            issuer = cert.issuer.rfc4514_string()
            names = self.parser.display_names(cert)
        except (ValueError, x509.DuplicateExtension, x509.UnsupportedGeneralNameType) as e:
            logger.debug(f"Certificate at {entry.index} did not parse: {e}")
            return SkipReason.PARSE_FAILED

        if entry.timestamp is None:
            return SkipReason.MISSING_TIMESTAMP
        try:
            timestamp = timestamp_from_millis(entry.timestamp)
        except (OverflowError, OSError, ValueError):
            return SkipReason.INVALID_TIMESTAMP

        return CertificateSummary(timestamp=timestamp, issuer=issuer, names=names)


class LogMonitor:
    """
    Follows a single log from its current head.

    The cursor (next_index) starts at the tree size seen on the first poll and
    moves forward by one for every entry returned, before that entry is
    classified, so no entry is ever handed to the classifier twice.
    """

    def __init__(
        self,
        source: LogSource,
        sink: RecordSink,
        config: Optional[MonitorConfig] = None,
        client_factory: ClientFactory = create_log_client,
        classifier: Optional[LeafClassifier] = None,
    ):
        self.source = source
        self.sink = sink
        self.config = config or MonitorConfig()
        self.client_factory = client_factory
        self.classifier = classifier or LeafClassifier()

        self.state = MonitorState.INITIALIZING
        self.next_index: Optional[int] = None
        self.error: Optional[CTVeilleurError] = None
        self.stats = MonitorStats()
        self._client: Optional[LogClient] = None
        self._failures = 0

    @property
    def name(self) -> str:
        return self.source.description or self.source.url

    async def initialize(self) -> None:
        """Build the client and set the cursor to the current tree size"""
        self.state = MonitorState.INITIALIZING
        try:
            client = self.client_factory(self.source, self.config)
        except ClientInitError:
            raise
        except Exception as e:
            raise ClientInitError(f"Failed to create CT client for {self.name}: {e}") from e

        try:
            head = await client.get_tree_head()
        except Exception as e:
            await client.close()
            raise InitialHeadError(
                f"Failed to get initial tree head for {self.name}: {e}"
            ) from e

        self._client = client
        self.next_index = head.size
        logger.info(f"Monitoring log: {self.name}")
        logger.info(f"Initial tree size for {self.name}: {head.size}")

    async def run(self, shutdown: asyncio.Event) -> None:
        """Monitor until shutdown is set. Startup failures end the monitor."""
        try:
            await self.initialize()
        except (ClientInitError, InitialHeadError) as e:
            logger.error(str(e))
            self.error = e
            self.state = MonitorState.STOPPED
            return

        try:
            await self._loop(shutdown)
        finally:
            await self.close()
            self.state = MonitorState.STOPPED
            logger.info(f"Stopped monitor for {self.name}")

    async def close(self) -> None:
        if self._client is not None:
            client, self._client = self._client, None
            await client.close()

    async def _loop(self, shutdown: asyncio.Event) -> None:
        loop = asyncio.get_running_loop()
        delay = self.next_delay()
        lag: float = 0

        while True:
            self.state = MonitorState.WAITING
            if await self._wait(shutdown, delay):
                logger.info(f"Stopping monitor for {self.name}")
                return

            self.state = MonitorState.FETCHING
            cycle_start = loop.time()
            await self.tick()

            # Sleep for the remaining time in the poll interval
            interval = self.next_delay()
            delay = interval - (loop.time() - cycle_start)
            if delay > 0:
                lag = 0
            else:
                current_lag = -delay
                if current_lag > lag:
                    logger.warning(
                        f"Poll cycle for {self.name} exceeded interval by {current_lag:.2f}s"
                    )
                lag = current_lag
                delay = 0

    @staticmethod
    async def _wait(shutdown: asyncio.Event, delay: float) -> bool:
        """Wait for the next tick. True means shutdown was requested."""
        if shutdown.is_set():
            return True
        try:
            await asyncio.wait_for(shutdown.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True

    def next_delay(self) -> float:
        """Poll interval, doubled per consecutive failed tick up to max_backoff"""
        interval = self.config.poll_interval
        if self._failures == 0:
            return interval
        cap = max(self.config.max_backoff, interval)
        return min(interval * (2 ** min(self._failures, 32)), cap)

    async def tick(self) -> None:
        """Poll the tree head once and process everything new"""
        if self._client is None or self.next_index is None:
            raise RuntimeError(f"Monitor for {self.name} is not initialized")
        client = self._client

        try:
            head = await client.get_tree_head()
        except Exception as e:
            self.stats.poll_errors += 1
            self._failures += 1
            logger.warning(f"Failed to get current tree head for {self.name}: {e}")
            return

        if head.size < self.next_index:
            self.stats.tree_shrinks += 1
            self._failures = 0
            logger.warning(
                f"Tree size of {self.name} went backwards: {head.size} < "
                f"{self.next_index}, ignoring"
            )
            return

        while self.next_index < head.size:
            start = self.next_index
            end = min(start + self.config.batch_size, head.size)
            try:
                entries = await client.get_entries(start, end)
            except Exception as e:
                self.stats.fetch_errors += 1
                self._failures += 1
                logger.warning(
                    f"Failed to get entries [{start}, {end}) for {self.name}: {e}"
                )
                return

            if not entries:
                self.stats.fetch_errors += 1
                self._failures += 1
                logger.warning(f"Log {self.name} returned no entries for [{start}, {end})")
                return

            for entry in entries[: end - start]:
                index = self.next_index
                self.next_index += 1
                await self._process(index, entry)

        self._failures = 0

    async def _process(self, index: int, entry: RawEntry) -> None:
        self.stats.entries_processed += 1
        try:
            result = self.classifier.classify(entry)
        except Exception as e:
            logger.warning(f"Failed to classify entry {index} from {self.name}: {e}")
            result = SkipReason.PARSE_FAILED

        if isinstance(result, SkipReason):
            self.stats.skipped[result] += 1
            if result is SkipReason.PRECERTIFICATE:
                logger.debug(f"Skipping precertificate {index} from {self.name}")
            elif result is SkipReason.UNKNOWN_TYPE:
                logger.info(f"Skipping unknown entry type {index} from {self.name}")
            else:
                logger.info(f"Skipping entry {index} from {self.name}: {result.value}")
            return

        record = CertificateRecord(source=self.source, index=index, summary=result)
        self.stats.records_emitted += 1
        try:
            result = self.sink(record)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Error in sink for {self.name} entry {index}: {e}", exc_info=True)


class MonitorSupervisor:
    """
    Runs one LogMonitor per source and waits for all of them.

    Example:
        supervisor = MonitorSupervisor(sources, print)
        loop.add_signal_handler(signal.SIGINT, supervisor.shutdown)
        await supervisor.run()
    """

    def __init__(
        self,
        sources: List[LogSource],
        sink: RecordSink,
        config: Optional[MonitorConfig] = None,
        client_factory: ClientFactory = create_log_client,
    ):
        if not sources:
            raise NoLogSourcesError("No log sources to monitor")
        self.sources = tuple(sources)
        self.config = config or MonitorConfig()
        self.monitors = [
            LogMonitor(source, sink, config=self.config, client_factory=client_factory)
            for source in self.sources
        ]
        self._shutdown = asyncio.Event()

    def shutdown(self) -> None:
        """Ask every monitor to stop at its next wait"""
        self._shutdown.set()

    async def run(self) -> List[LogMonitor]:
        """Start all monitors and return once every one of them has stopped"""
        logger.info(f"Starting monitoring of {len(self.monitors)} CT logs")
        tasks = [
            asyncio.create_task(monitor.run(self._shutdown), name=f"monitor:{monitor.source.url}")
            for monitor in self.monitors
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        for monitor, result in zip(self.monitors, results):
            if isinstance(result, BaseException):
                logger.error(
                    f"Monitor for {monitor.name} crashed: {result}",
                    exc_info=(type(result), result, result.__traceback__),
                )
                monitor.state = MonitorState.STOPPED

        logger.info("All monitors stopped.")
        return self.monitors

    def get_stats(self) -> Dict[str, MonitorStats]:
        return {monitor.source.url: monitor.stats for monitor in self.monitors}
