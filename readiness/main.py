"""Entry point for the readiness toolkit: the `readiness` console script."""

from __future__ import annotations

import argparse
import logging
import sys
from contextlib import nullcontext
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from readiness import __version__
from readiness.checks.models import Status
from readiness.config import settings
from readiness.inventory import HostEntry, HostInventory
from readiness.keys import KeyDeploymentError, deploy_to_hosts, render_deployment
from readiness.probes.executor import LocalExecutor, executor_for
from readiness.report.jsonout import to_json
from readiness.runner import check_hosts

console = Console()


def _configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def _load_hosts(args: argparse.Namespace, group: str) -> list[HostEntry]:
    inventory = HostInventory(Path(args.inventory) if args.inventory else None)
    return inventory.select(group, limit=args.limit)


def run_check(args: argparse.Namespace) -> int:
    """Run the readiness battery against the selected hosts."""
    if args.local:
        hosts = [HostEntry(name="localhost", connection="local", groups=["local"])]
    else:
        hosts = _load_hosts(args, args.group or settings.readiness_group)

    if not hosts:
        console.print("[yellow]No hosts selected; check the inventory and group.[/yellow]")
        return 1

    if not args.json:
        console.print(Panel.fit(
            f"[bold]Readiness check[/bold] v{__version__}\n"
            f"Hosts: {len(hosts)}\n"
            f"Workers: {args.workers or settings.max_workers}",
            title="readiness",
            border_style="blue",
        ))

    factory = (lambda _host: LocalExecutor()) if args.local else executor_for
    with console.status("[bold green]Probing hosts...", spinner="dots") if not args.json else nullcontext():
        runs = check_hosts(hosts, executor_factory=factory, max_workers=args.workers)

    if args.json:
        print(to_json(runs))
    else:
        for run in runs:
            console.print(Text(run.text), soft_wrap=True)

    return 1 if any(run.verdict == Status.FAIL for run in runs) else 0


def run_deploy_key(args: argparse.Namespace) -> int:
    """Deploy the SSH private key to the migration targets."""
    if args.key_file:
        key_content = Path(args.key_file).read_text(encoding="utf-8")
    else:
        key_content = settings.ssh_private_key_content

    hosts = _load_hosts(args, args.group or settings.deploy_group)
    if not hosts:
        console.print("[yellow]No hosts selected; check the inventory and group.[/yellow]")
        return 1

    try:
        results = deploy_to_hosts(
            hosts, key_content, key_path=args.key_path, max_workers=args.workers,
        )
    except KeyDeploymentError as e:
        console.print(f"[bold red]{e}[/bold red]")
        return 2

    failed = 0
    for result in results:
        if isinstance(result, KeyDeploymentError):
            failed += 1
            console.print(f"[red]✗ {result}[/red]")
            continue
        if not result.valid:
            failed += 1
        console.print(Text(render_deployment(result)), soft_wrap=True)

    return 1 if failed else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="readiness", description="Host readiness checks and SSH key deployment")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command")

    def common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--inventory", help=f"Inventory YAML (default: {settings.inventory_file})")
        p.add_argument("--group", help="Inventory group to target")
        p.add_argument("--limit", nargs="+", metavar="HOST", help="Only these host names")
        p.add_argument("--workers", type=int, help="Hosts processed in parallel")

    check = sub.add_parser("check", help="Run the readiness battery and print reports")
    common(check)
    check.add_argument("--local", action="store_true", help="Check this machine instead of the inventory")
    check.add_argument("--json", action="store_true", help="Print JSON instead of text reports")

    deploy = sub.add_parser("deploy-key", help="Deploy an SSH private key to migration targets")
    common(deploy)
    deploy.add_argument("--key-file", help="Read the private key from this file")
    deploy.add_argument("--key-path", help=f"Target path on hosts (default: {settings.ssh_key_path})")

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging()

    if args.command == "check":
        sys.exit(run_check(args))
    elif args.command == "deploy-key":
        sys.exit(run_deploy_key(args))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
