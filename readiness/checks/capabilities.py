"""Capabilities gate conditional probes and the rules that read them."""

from __future__ import annotations

from readiness.checks.models import ProbeSet
from readiness.probes.facts import os_family

ALPINE = "alpine"
DEBIAN = "debian"
DOCKER = "docker"
DOCKER_DAEMON = "docker_daemon"
DOCKER_IMAGE = "docker_image"

# Probe names the capabilities depend on
DOCKER_VERSION = "docker_version"
DOCKERD_PROCESS = "dockerd_process"
DOCKER_INFO = "docker_info"
DOCKER_PULL = "docker_pull"


def detect_capabilities(probes: ProbeSet) -> frozenset[str]:
    """Derive the capability set from the probes collected so far."""
    caps: set[str] = set()

    family = os_family(probes)
    if family == "Alpine":
        caps.add(ALPINE)
    elif family == "Debian":
        caps.add(DEBIAN)

    if probes.get(DOCKER_VERSION).ok:
        caps.add(DOCKER)
        # Daemon counts as up when either signal is present; dockerd may run
        # under another process name (rootless, snap, podman shims).
        if probes.get(DOCKERD_PROCESS).count() > 0 or probes.get(DOCKER_INFO).ok:
            caps.add(DOCKER_DAEMON)
        if probes.get(DOCKER_PULL).ok:
            caps.add(DOCKER_IMAGE)

    return frozenset(caps)
