"""Host inventory: loads inventory.yaml and provides typed host entries.

Example::

    hosts:
      - name: lxc-101
        address: 10.0.0.101
        groups: [debian, debian_migration_targets]
        vars:
          alpine_source: alpine-01
      - name: workstation
        connection: local
        groups: [debian]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from readiness.config import settings

logger = logging.getLogger(__name__)

ALL_GROUP = "all"


# ── Data models ──────────────────────────────────────────────────────────────


@dataclass
class HostEntry:
    """A single inventory host."""

    name: str
    address: str = ""
    user: str = ""
    port: int = 0  # 0 = use settings.ssh_port
    identity_file: str = ""
    connection: str = "ssh"  # ssh | local
    groups: list[str] = field(default_factory=list)
    vars: dict[str, Any] = field(default_factory=dict)


# ── Inventory ────────────────────────────────────────────────────────────────


class HostInventory:
    """Loads and caches hosts from the inventory file."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path(settings.inventory_file)
        self._hosts: list[HostEntry] = []
        self._loaded = False

    def load(self, force: bool = False) -> list[HostEntry]:
        """Parse the inventory file and return the host list."""
        if self._loaded and not force:
            return self._hosts

        self._hosts = []
        if not self._path.exists():
            logger.warning("Inventory file not found: %s", self._path)
            self._loaded = True
            return self._hosts

        try:
            raw = yaml.safe_load(self._path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            logger.error("Failed to parse %s: %s", self._path, e)
            self._loaded = True
            return self._hosts

        for entry in raw.get("hosts", []) or []:
            try:
                self._hosts.append(_parse_host(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed host entry: %s", e)

        self._loaded = True
        logger.info("Loaded %d hosts from %s", len(self._hosts), self._path)
        return self._hosts

    @property
    def hosts(self) -> list[HostEntry]:
        return self.load()

    def get(self, name: str) -> HostEntry | None:
        return next((h for h in self.hosts if h.name == name), None)

    def select(self, group: str = ALL_GROUP, limit: list[str] | None = None) -> list[HostEntry]:
        """Hosts in ``group`` (inventory order), optionally narrowed to ``limit`` names."""
        selected = [h for h in self.hosts if group == ALL_GROUP or group in h.groups]
        if limit:
            selected = [h for h in selected if h.name in limit]
        return selected


# ── Parsers ──────────────────────────────────────────────────────────────────


def _parse_host(raw: dict[str, Any]) -> HostEntry:
    name = str(raw["name"]).strip()
    if not name:
        raise ValueError("host 'name' is required")
    connection = str(raw.get("connection", "ssh"))
    if connection not in ("ssh", "local"):
        raise ValueError(f"unsupported connection {connection!r} for host {name}")
    return HostEntry(
        name=name,
        address=str(raw.get("address", "")),
        user=str(raw.get("user", "")),
        port=int(raw.get("port", 0)),
        identity_file=str(raw.get("identity_file", "")),
        connection=connection,
        groups=[str(g) for g in raw.get("groups", []) or []],
        vars=dict(raw.get("vars", {}) or {}),
    )
