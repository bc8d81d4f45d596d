#!/usr/bin/env python3
"""
Concurrent Firebase Exposure Scanner

Checks a list of hostnames for pages that load JavaScript bundles carrying a
Firebase configuration (both "firebase" and "databaseURL" in the script body).
Probes run concurrently under a fixed limit and results come back in input order.

Author: Firebase Scanner Contributors
License: MIT
"""

import asyncio
import csv
import json
import logging
import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence, TextIO, Tuple, Union

from rich.console import Console
from rich.table import Table
from rich.text import Text

from fetchers import ResourceFetcher

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 10
DEFAULT_TIMEOUT_MS = 10000
SIGNATURE_TOKENS = ('firebase', 'databaseurl')


class ProbeStatus(Enum):
    """Outcome kind of a single hostname probe. Values are the display labels."""
    SIGNATURE = 'FIREBASE'
    NO_SIGNATURE = 'NO FIREBASE'
    UNREACHABLE = 'HTTP TIMEOUT'


@dataclass(frozen=True)
class ProbeOutcome:
    """Classification of one hostname. `detail` is diagnostic only."""
    domain: str
    status: ProbeStatus
    firebase_files: Tuple[str, ...] = ()
    detail: Optional[str] = None

    @classmethod
    def unreachable(cls, domain: str, detail: str) -> 'ProbeOutcome':
        return cls(domain=domain, status=ProbeStatus.UNREACHABLE, detail=detail)

    def to_dict(self) -> Dict:
        return {
            'domain': self.domain,
            'status': self.status.value,
            'firebase_files': list(self.firebase_files),
            'detail': self.detail,
        }


@dataclass
class ScanResult:
    """Probe outcomes in the same order as the input hostnames"""
    outcomes: List[ProbeOutcome] = field(default_factory=list)
    duration: float = 0.0

    def __len__(self) -> int:
        return len(self.outcomes)

    def __iter__(self) -> Iterator[ProbeOutcome]:
        return iter(self.outcomes)

    def __getitem__(self, index: int) -> ProbeOutcome:
        return self.outcomes[index]

    def visible(self, show_all: bool = False) -> List[ProbeOutcome]:
        """Outcomes worth printing: only Firebase hits unless show_all is set"""
        if show_all:
            return list(self.outcomes)
        return [o for o in self.outcomes if o.status is ProbeStatus.SIGNATURE]


class SignatureInspector:
    """
    Case-insensitive check that a script body contains every signature token.

    Args:
        tokens: Substrings that must all be present (compared lowercased)
    """
    def __init__(self, tokens: Sequence[str] = SIGNATURE_TOKENS):
        if not tokens:
            raise ValueError("At least one signature token is required")
        self.tokens = tuple(token.lower() for token in tokens)

    def matches(self, body: Union[str, bytes]) -> bool:
        if isinstance(body, bytes):
            body = body.decode('utf-8', errors='ignore')
        content = body.lower()
        return all(token in content for token in self.tokens)


_default_inspector = SignatureInspector()


def matches_signature(body: Union[str, bytes]) -> bool:
    """Check a body against the default Firebase tokens"""
    return _default_inspector.matches(body)


class FirebaseScanner:
    """
    Scans hostnames for Firebase configuration in the scripts their pages load.

    Features:
    - Semaphore-bounded concurrent probes
    - Per-request timeouts on every page load and script fetch
    - Failures contained per hostname and reported as HTTP TIMEOUT
    - Results returned in input order

    Args:
        fetcher (ResourceFetcher): Backend that loads pages and fetches scripts
        max_concurrent (int): Maximum number of hostnames probed at once
        timeout_ms (int): Timeout for each network operation in milliseconds
        inspector (SignatureInspector): Signature check (Firebase tokens if None)
    """
    def __init__(
        self,
        fetcher: ResourceFetcher,
        max_concurrent: int = DEFAULT_CONCURRENCY,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        inspector: Optional[SignatureInspector] = None,
    ):
        if not isinstance(max_concurrent, int) or max_concurrent < 1:
            raise ValueError(f"max_concurrent must be a positive integer, got {max_concurrent!r}")
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms!r}")

        self.fetcher = fetcher
        self.max_concurrent = max_concurrent
        self.timeout_ms = timeout_ms
        self.inspector = inspector or _default_inspector

        # Only touched from the event loop
        self.completed = 0

    async def probe_domain(self, domain: str) -> ProbeOutcome:
        """Load http://{domain}, then fetch and inspect every script it references"""
        url = f"http://{domain}"

        try:
            page = await self.fetcher.load_page(url, self.timeout_ms)
        except Exception as e:
            error_msg = f"{type(e).__name__}: {e}"
            logger.warning(f"Failed to load {url}: {error_msg}")
            return ProbeOutcome.unreachable(domain, error_msg)

        if page.status_code != 200:
            logger.warning(f"{url} returned HTTP {page.status_code}")
            return ProbeOutcome.unreachable(domain, f"HTTP {page.status_code}")

        firebase_files = []
        for script_url in page.script_urls:
            if not script_url:
                continue
            try:
                body = await self.fetcher.fetch_resource(script_url, self.timeout_ms)
            except Exception as e:
                logger.debug(f"Skipping {script_url} for {domain}: {type(e).__name__}: {e}")
                continue

            if self.inspector.matches(body):
                firebase_files.append(script_url)

        logger.debug(f"{domain}: inspected {len(page.script_urls)} scripts, {len(firebase_files)} matched")

        if firebase_files:
            return ProbeOutcome(domain=domain, status=ProbeStatus.SIGNATURE, firebase_files=tuple(firebase_files))
        return ProbeOutcome(domain=domain, status=ProbeStatus.NO_SIGNATURE)

    async def scan_domains(
        self,
        domains: Sequence[str],
        on_progress: Optional[Callable[[], None]] = None,
    ) -> ScanResult:
        """
        Probe every hostname with at most max_concurrent probes in flight.

        Duplicates are probed independently. on_progress is called once per
        finished probe whatever its outcome.
        """
        start_time = time.time()
        self.completed = 0

        if not domains:
            return ScanResult(duration=time.time() - start_time)

        logger.info(f"Scanning {len(domains)} domains with {self.max_concurrent} concurrent probes")

        semaphore = asyncio.Semaphore(self.max_concurrent)
        outcomes: List[Optional[ProbeOutcome]] = [None] * len(domains)

        async def run_probe(index: int, domain: str) -> None:
            try:
                async with semaphore:
                    outcomes[index] = await self.probe_domain(domain)
            finally:
                self.completed += 1
                if on_progress is not None:
                    try:
                        on_progress()
                    except Exception as e:
                        logger.error(f"Progress callback failed after {domain}: {e}", exc_info=e)

        results = await asyncio.gather(
            *(run_probe(index, domain) for index, domain in enumerate(domains)),
            return_exceptions=True,
        )

        for index, result in enumerate(results):
            if isinstance(result, Exception):
                logger.error(f"Probe for {domains[index]} failed with exception: {result}", exc_info=result)
                outcomes[index] = ProbeOutcome.unreachable(domains[index], f"{type(result).__name__}: {result}")

        scan_result = ScanResult(outcomes=list(outcomes), duration=time.time() - start_time)
        summary = get_scan_summary(scan_result)
        logger.info(
            f"Scan finished in {scan_result.duration:.2f}s: {summary['firebase']} firebase, "
            f"{summary['no_firebase']} without, {summary['unreachable']} unreachable"
        )
        return scan_result


def _clean_domains(lines: Iterable[str]) -> List[str]:
    domains = []
    for line in lines:
        domain = line.strip()
        if domain and not domain.startswith('#'):
            domains.append(domain)
    return domains


def load_domains_from_file(file_path: str) -> List[str]:
    """Load domains from a text file (one per line)"""
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            domains = _clean_domains(f)
    except FileNotFoundError:
        logger.error(f"Domain file not found: {file_path}")
        return []

    logger.info(f"Loaded {len(domains)} domains from {file_path}")
    return domains


def read_domains_from_stream(stream: TextIO) -> List[str]:
    """Read domains from piped input (one per line)"""
    return _clean_domains(stream)


def parse_domain_list(text: str) -> List[str]:
    """Split an inline list delimited by spaces, commas or newlines"""
    return [d.strip() for d in re.split(r'[\s,]+', text) if d.strip()]


def get_scan_summary(result: ScanResult) -> Dict:
    """Count outcomes per status"""
    counts = {status: 0 for status in ProbeStatus}
    for outcome in result:
        counts[outcome.status] += 1

    return {
        'total_scanned': len(result),
        'firebase': counts[ProbeStatus.SIGNATURE],
        'no_firebase': counts[ProbeStatus.NO_SIGNATURE],
        'unreachable': counts[ProbeStatus.UNREACHABLE],
        'scan_duration': result.duration,
    }


def print_results(result: ScanResult, show_all: bool = False, console: Optional[Console] = None):
    """Print one line per outcome, with matched script URLs under Firebase hits"""
    console = console or Console()
    for outcome in result.visible(show_all):
        style = "green" if outcome.status is ProbeStatus.SIGNATURE else "red"
        console.print(Text.assemble((f"[{outcome.status.value}]", style), f" {outcome.domain}"))
        for file_url in outcome.firebase_files:
            console.print(Text(f"  - JS file: {file_url}"))


def print_summary(summary: Dict, console: Optional[Console] = None):
    """Print formatted scan summary"""
    console = console or Console()
    table = Table(title="🔥 Firebase Scan Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green")

    table.add_row("Total domains scanned", str(summary['total_scanned']))
    table.add_row("Domains loading Firebase config", str(summary['firebase']))
    table.add_row("Domains without Firebase config", str(summary['no_firebase']))
    table.add_row("Domains unreachable or non-200", str(summary['unreachable']))
    table.add_row("Total scan duration", f"{summary['scan_duration']:.2f} seconds")

    console.print(table)


def export_results(result: ScanResult, output_file: str = "results.csv") -> Dict:
    """Export results to a JSON file (.json) or CSV file (anything else)"""
    rows = [outcome.to_dict() for outcome in result]

    with open(output_file, 'w', newline='', encoding='utf-8') as f:
        if output_file.lower().endswith('.json'):
            json.dump(rows, f, indent=2)
        else:
            fieldnames = ['domain', 'status', 'firebase_files', 'detail']
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            for row in rows:
                row['firebase_files'] = ' '.join(row['firebase_files'])
                row['detail'] = row['detail'] or ""
                writer.writerow(row)

    logger.info(f"Exported {len(rows)} results to {output_file}")
    return {'exported_count': len(rows), 'file': output_file}
