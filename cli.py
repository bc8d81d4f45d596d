#!/usr/bin/env python3
"""
Command Line Interface for the Firebase Scanner

Checks hostnames for pages loading JavaScript bundles that embed a Firebase
configuration. Hostnames can be piped in, read from a file, or passed inline.

Usage:
    python cli.py --file domains.txt [options]
    cat domains.txt | python cli.py [options]

Example:
    python cli.py -d "example.com,shop.example.com" --show-all --concurrent 5

Author: Firebase Scanner Contributors
License: MIT
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.progress import Progress

from fetchers import open_fetcher
from firebase_scanner import (
    DEFAULT_CONCURRENCY,
    DEFAULT_TIMEOUT_MS,
    FirebaseScanner,
    ScanResult,
    export_results,
    get_scan_summary,
    load_domains_from_file,
    parse_domain_list,
    print_results,
    print_summary,
    read_domains_from_stream,
)

logger = logging.getLogger(__name__)


def configure_logging(log_file: str = 'firebase_scanner.log', verbose: bool = False):
    """Log to a file and to stderr, keeping stdout for results"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stderr)
        ]
    )


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='firebase-scanner',
        description='Find sites whose JavaScript bundles embed a Firebase configuration',
    )
    parser.add_argument('--file', '-f',
                       help='File containing list of domains to check (one per line)')
    parser.add_argument('--domains', '-d',
                       help='List of domains to check, delimited by space, comma, or newline')
    parser.add_argument('--show-all', '-s', action='store_true',
                       help='Show all results, including NO FIREBASE and HTTP TIMEOUT')
    parser.add_argument('--concurrent', '-c', type=positive_int, default=DEFAULT_CONCURRENCY,
                       help=f'Maximum concurrent domain probes (default: {DEFAULT_CONCURRENCY})')
    parser.add_argument('--timeout', '-t', type=positive_int, default=DEFAULT_TIMEOUT_MS,
                       help=f'Timeout per page load or script fetch in ms (default: {DEFAULT_TIMEOUT_MS})')
    parser.add_argument('--no-browser', action='store_true',
                       help='Parse static HTML with httpx instead of rendering pages in Chromium')
    parser.add_argument('--export', '-o',
                       help='Write results to a CSV file, or JSON if the name ends in .json')
    parser.add_argument('--log-file', default='firebase_scanner.log',
                       help='Log file path (default: firebase_scanner.log)')
    parser.add_argument('--verbose', '-v', action='store_true',
                       help='Enable debug logging')
    return parser


def collect_domains(args: argparse.Namespace) -> Optional[List[str]]:
    """Read domains from piped stdin, --file or --domains, in that order. None if no source was given.

    Raises:
        FileNotFoundError: if --file names a missing file
    """
    if not sys.stdin.isatty():
        return read_domains_from_stream(sys.stdin)
    if args.file:
        if not Path(args.file).is_file():
            raise FileNotFoundError(args.file)
        return load_domains_from_file(args.file)
    if args.domains:
        return parse_domain_list(args.domains)
    return None


async def run_scan(
    domains: List[str],
    max_concurrent: int,
    timeout_ms: int,
    use_browser: bool,
    console: Console,
) -> ScanResult:
    """Scan with a progress bar driven by the scanner's completion callback"""
    async with open_fetcher(use_browser=use_browser) as fetcher:
        scanner = FirebaseScanner(fetcher, max_concurrent=max_concurrent, timeout_ms=timeout_ms)
        with Progress(console=console) as progress:
            task = progress.add_task("[cyan]Checking domains...", total=len(domains))
            return await scanner.scan_domains(
                domains,
                on_progress=lambda: progress.update(task, advance=1),
            )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_file, args.verbose)

    console = Console()

    try:
        domains = collect_domains(args)
    except FileNotFoundError:
        console.print(f"[red]Error: Domain file not found: {args.file}[/red]")
        return 1
    if domains is None:
        console.print("[yellow]Please provide a file or list of domains to check, or pipe the domains list.[/yellow]")
        return 1
    if not domains:
        console.print("No domains to check")
        return 0

    logger.info(f"Loaded {len(domains)} domains (browser: {not args.no_browser})")
    console.print(f"[bold blue]🚀 Checking {len(domains)} domains...[/bold blue]")

    result = asyncio.run(run_scan(
        domains,
        max_concurrent=args.concurrent,
        timeout_ms=args.timeout,
        use_browser=not args.no_browser,
        console=console,
    ))

    print_results(result, show_all=args.show_all, console=console)
    print_summary(get_scan_summary(result), console=console)

    if args.export:
        export_results(result, output_file=args.export)
        console.print(f"[green]Exported {len(result)} results to {args.export}[/green]")

    console.print("[green]✅ Scan completed![/green]")
    return 0


if __name__ == "__main__":
    sys.exit(main())
