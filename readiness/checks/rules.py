"""Classification rules: probe outcomes → check results.

Each rule is a pure function of the collected ``ProbeSet``. It is registered
under a key together with the check names it promises (in order), the probes
it reads and, optionally, the capability it needs. The aggregator uses that
declaration to substitute neutral records when a rule cannot run.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from readiness.checks.capabilities import ALPINE, DEBIAN
from readiness.checks.models import NOT_AVAILABLE, CheckResult, ProbeOutcome, ProbeSet, Status
from readiness.probes.facts import OS_RELEASE, os_family, parse_os_release

Classifier = Callable[[ProbeSet], list[CheckResult]]

SUPPORTED_OS_FAMILIES = ("Alpine", "Debian")
TOOL_PROBE_PREFIX = "tool:"


@dataclass(frozen=True)
class CheckDefinition:
    """A registered classification policy."""

    key: str
    names: tuple[str, ...]
    probes: tuple[str, ...]
    classify: Classifier
    requires: str | None = None


REGISTRY: dict[str, CheckDefinition] = {}


def rule(
    key: str,
    names: tuple[str, ...],
    probes: tuple[str, ...] = (),
    requires: str | None = None,
) -> Callable[[Classifier], Classifier]:
    """Register a classifier under ``key``."""

    def decorator(fn: Classifier) -> Classifier:
        REGISTRY[key] = CheckDefinition(key, names, probes, fn, requires)
        return fn

    return decorator


def _status(ok: bool, fail: Status = Status.FAIL) -> Status:
    return Status.PASS if ok else fail


def _tri_state(outcome: ProbeOutcome, installed: bool) -> Status:
    """PASS on success, WARN if the tool exists but the test failed, else INFO."""
    if outcome.ok:
        return Status.PASS
    return Status.WARN if installed else Status.INFO


def _table_rows(outcome: ProbeOutcome) -> int:
    # Tabular CLI output carries one header line
    return max(len(outcome.lines) - 1, 0)


def _http_status(outcome: ProbeOutcome) -> int:
    # curl -w '%{http_code}' prints 000 when no response was received
    return outcome.count() if outcome.ran else 0


# ── Connectivity and identity ────────────────────────────────────────────────


@rule("connectivity", ("Basic Connectivity",), ("ping",))
def classify_connectivity(probes: ProbeSet) -> list[CheckResult]:
    ping = probes["ping"]
    return [CheckResult(
        "Basic Connectivity",
        _status(ping.ok),
        "SSH connection successful" if ping.ok else f"Connection failed: {ping.stderr or f'rc={ping.rc}'}",
    )]


@rule(
    "user",
    (
        "Connection User",
        "User ID Info",
        "Effective User (become)",
        "Sudo Privileges",
        "User Home Directory",
        "User Shell",
        "Authentication Method",
    ),
    ("whoami", "user_id", "effective_user", "sudo", "user_home", "user_shell", "auth_method"),
)
def classify_user(probes: ProbeSet) -> list[CheckResult]:
    effective = probes["effective_user"].stdout.strip()
    sudo_ok = probes["sudo"].ok
    return [
        CheckResult("Connection User", Status.INFO, f"Connected as: {probes['whoami'].stdout.strip()}"),
        CheckResult("User ID Info", Status.INFO, probes["user_id"].stdout.strip()),
        CheckResult(
            "Effective User (become)",
            _status(effective == "root", Status.WARN),
            f"Can become: {effective}",
        ),
        CheckResult(
            "Sudo Privileges",
            _status(sudo_ok, Status.WARN),
            "Sudo access available" if sudo_ok else "Limited/no sudo access",
        ),
        CheckResult("User Home Directory", Status.INFO, f"Home: {probes['user_home'].stdout.strip()}"),
        CheckResult("User Shell", Status.INFO, f"Shell: {probes['user_shell'].stdout.strip()}"),
        CheckResult("Authentication Method", Status.INFO, probes["auth_method"].stdout.strip()),
    ]


@rule("os", ("OS Compatibility",), (OS_RELEASE,))
def classify_os(probes: ProbeSet) -> list[CheckResult]:
    family = os_family(probes)
    release = parse_os_release(probes[OS_RELEASE].stdout)
    if family not in SUPPORTED_OS_FAMILIES:
        return [CheckResult(
            "OS Compatibility",
            Status.FAIL,
            f"Unsupported OS family: {family}. Only Alpine and Debian-based systems are supported.",
        )]
    distro = release.get("NAME", family)
    return [CheckResult(
        "OS Compatibility",
        Status.PASS,
        f"{distro} {release.get('VERSION_ID', '')} ({family})",
    )]


# ── Python ───────────────────────────────────────────────────────────────────


@rule("python3", ("Python3 Available",), ("python3",))
def classify_python3(probes: ProbeSet) -> list[CheckResult]:
    python = probes["python3"]
    # Python < 3.4 prints --version to stderr
    version = (python.stdout or python.stderr).strip()
    return [CheckResult(
        "Python3 Available",
        _status(python.ok),
        version if python.ok else "Python3 not found",
    )]


@rule("pip", ("Python3 Pip",), ("pip",))
def classify_pip(probes: ProbeSet) -> list[CheckResult]:
    pip = probes["pip"]
    return [CheckResult(
        "Python3 Pip",
        _status(pip.ok, Status.WARN),
        pip.stdout.strip() if pip.ok else "pip not available",
    )]


# ── Package managers ─────────────────────────────────────────────────────────


@rule(
    "packages_alpine",
    ("Package Manager (apk)", "Package Repositories"),
    ("apk_version", "apk_update"),
    requires=ALPINE,
)
def classify_apk(probes: ProbeSet) -> list[CheckResult]:
    apk = probes["apk_version"]
    update = probes["apk_update"]
    return [
        CheckResult(
            "Package Manager (apk)",
            _status(apk.ok),
            apk.stdout.strip() if apk.ok else "apk not available",
        ),
        CheckResult(
            "Package Repositories",
            _status(update.ok, Status.WARN),
            "Repository update " + ("successful" if update.ok else "failed"),
        ),
    ]


@rule(
    "packages_debian",
    ("Package Manager (apt)", "Package Lists"),
    ("apt_version", "apt_lists_fresh"),
    requires=DEBIAN,
)
def classify_apt(probes: ProbeSet) -> list[CheckResult]:
    apt = probes["apt_version"]
    fresh = probes["apt_lists_fresh"].count() > 0
    return [
        CheckResult(
            "Package Manager (apt)",
            _status(apt.ok),
            apt.lines[0] if apt.ok and apt.lines else "apt not available",
        ),
        CheckResult(
            "Package Lists",
            _status(fresh, Status.WARN),
            "Package lists " + ("are current" if fresh else "may need updating"),
        ),
    ]


# ── Resources ────────────────────────────────────────────────────────────────


@rule("resources", ("Disk Space", "Memory Usage", "System Load"), ("disk_space", "memory", "load"))
def classify_resources(probes: ProbeSet) -> list[CheckResult]:
    disks = probes["disk_space"].lines
    return [
        CheckResult("Disk Space", Status.INFO, ", ".join(disks) if disks else "No disk info available"),
        CheckResult("Memory Usage", Status.INFO, probes["memory"].stdout.strip()),
        CheckResult("System Load", Status.INFO, probes["load"].stdout.strip()),
    ]


# ── Network ──────────────────────────────────────────────────────────────────


@rule(
    "network",
    ("External Connectivity", "DNS Resolution", "HTTPS Connectivity"),
    ("external_http", "dns", "https"),
)
def classify_network(probes: ProbeSet) -> list[CheckResult]:
    external = 200 <= _http_status(probes["external_http"]) < 400
    dns = probes["dns"].ok
    https = _http_status(probes["https"]) == 200
    return [
        CheckResult(
            "External Connectivity",
            _status(external),
            "Can reach external hosts" if external else "Cannot reach external hosts",
        ),
        CheckResult(
            "DNS Resolution",
            _status(dns),
            "DNS working" if dns else "DNS issues detected",
        ),
        CheckResult(
            "HTTPS Connectivity",
            _status(https, Status.WARN),
            "HTTPS working" if https else "HTTPS may have issues",
        ),
    ]


# ── SSH and security ─────────────────────────────────────────────────────────


@rule(
    "ssh_security",
    ("SSH Configuration", "SSH Service", "Firewall Status"),
    ("sshd_config", "sshd_process", "firewall"),
)
def classify_ssh_security(probes: ProbeSet) -> list[CheckResult]:
    config = probes["sshd_config"].ok
    running = probes["sshd_process"].count() > 0
    firewall = probes["firewall"]
    # iptables -L -n prints 3 chain headers with no rules
    rules_present = firewall.ok and len(firewall.lines) > 3
    return [
        CheckResult(
            "SSH Configuration",
            _status(config, Status.WARN),
            "SSH config exists" if config else "SSH config missing",
        ),
        CheckResult(
            "SSH Service",
            _status(running, Status.INFO),
            "SSH service running" if running else "SSH service status unclear",
        ),
        CheckResult(
            "Firewall Status",
            Status.INFO,
            "Firewall rules present" if rules_present else "No firewall rules detected",
        ),
    ]


# ── Tools ────────────────────────────────────────────────────────────────────


@rule("tools", ("Essential Tools",))
def classify_tools(probes: ProbeSet) -> list[CheckResult]:
    names = probes.names(TOOL_PROBE_PREFIX)
    if not names:
        return [CheckResult("Essential Tools", Status.INFO, NOT_AVAILABLE)]
    available = [n[len(TOOL_PROBE_PREFIX):] for n in names if probes[n].ok]
    missing = [n[len(TOOL_PROBE_PREFIX):] for n in names if not probes[n].ok]
    details = "Available: " + ", ".join(available)
    if missing:
        details += ", Missing: " + ", ".join(missing)
    return [CheckResult("Essential Tools", Status.INFO, details)]


# ── OS specific ──────────────────────────────────────────────────────────────


@rule(
    "alpine",
    ("Alpine Version", "Alpine Repositories", "Alpine Services"),
    ("alpine_release", "apk_repositories", "openrc"),
    requires=ALPINE,
)
def classify_alpine(probes: ProbeSet) -> list[CheckResult]:
    repos = [line for line in probes["apk_repositories"].lines if not line.lstrip().startswith("#")]
    return [
        CheckResult("Alpine Version", Status.INFO, probes["alpine_release"].stdout.strip()),
        CheckResult("Alpine Repositories", Status.INFO, f"{len(repos)} repositories configured"),
        CheckResult(
            "Alpine Services",
            Status.INFO,
            "Service manager operational" if probes["openrc"].ok else "Service manager issues",
        ),
    ]


@rule(
    "debian",
    ("Distribution Info", "Systemd Status", "APT Sources"),
    ("lsb_release", "systemd", "apt_sources"),
    requires=DEBIAN,
)
def classify_debian(probes: ProbeSet) -> list[CheckResult]:
    lsb = probes["lsb_release"]
    systemd = probes["systemd"]
    sources = probes["apt_sources"]
    return [
        CheckResult(
            "Distribution Info",
            Status.INFO,
            lsb.lines[0] if lsb.ok and lsb.lines else "Version info unavailable",
        ),
        CheckResult(
            "Systemd Status",
            _status("running" in systemd.stdout, Status.WARN),
            systemd.stdout.strip() if systemd.ok else "Systemd status unknown",
        ),
        CheckResult(
            "APT Sources",
            Status.INFO,
            f"{len(sources.lines) if sources.ok else 0} source files configured",
        ),
    ]


# ── Docker ───────────────────────────────────────────────────────────────────


@rule(
    "docker",
    (
        "Docker Runtime",
        "Docker Service",
        "Docker Daemon Access",
        "Docker Pull Test",
        "Docker Run Test",
        "Docker Networks",
        "Docker Volumes",
        "Running Containers",
    ),
    (
        "docker_version",
        "dockerd_process",
        "docker_info",
        "docker_pull",
        "docker_run",
        "docker_networks",
        "docker_volumes",
        "docker_containers",
    ),
)
def classify_docker(probes: ProbeSet) -> list[CheckResult]:
    version = probes["docker_version"]
    installed = version.ok
    service = probes["dockerd_process"].count() > 0
    info = probes["docker_info"]
    pull = probes["docker_pull"]
    run = probes["docker_run"]
    networks = probes["docker_networks"]
    volumes = probes["docker_volumes"]
    containers = probes["docker_containers"]

    def functional(outcome: ProbeOutcome, passed: str, failed: str) -> str:
        if outcome.ok:
            return passed
        return failed if installed else "Docker not available"

    return [
        CheckResult(
            "Docker Runtime",
            _status(installed, Status.INFO),
            version.stdout.strip() if installed else "Docker not installed",
        ),
        CheckResult(
            "Docker Service",
            _status(service, Status.INFO),
            "Docker service active" if service else "Docker service not active/installed",
        ),
        CheckResult(
            "Docker Daemon Access",
            _tri_state(info, installed),
            functional(info, "Docker daemon accessible", "Cannot access Docker daemon"),
        ),
        CheckResult(
            "Docker Pull Test",
            _tri_state(pull, installed),
            functional(pull, "Can pull images from registry", "Cannot pull images"),
        ),
        CheckResult(
            "Docker Run Test",
            _tri_state(run, installed),
            functional(run, "Can run containers successfully", "Cannot run containers"),
        ),
        CheckResult(
            "Docker Networks",
            Status.INFO,
            f"{_table_rows(networks)} networks configured" if networks.ok else "Network info unavailable",
        ),
        CheckResult(
            "Docker Volumes",
            Status.INFO,
            f"{_table_rows(volumes)} volumes present" if volumes.ok else "Volume info unavailable",
        ),
        CheckResult(
            "Running Containers",
            Status.INFO,
            f"{_table_rows(containers)} containers running" if containers.ok else "Container info unavailable",
        ),
    ]


# ── Time ─────────────────────────────────────────────────────────────────────


@rule("time_sync", ("Time Synchronization",), ("timedatectl",))
def classify_time_sync(probes: ProbeSet) -> list[CheckResult]:
    timedatectl = probes["timedatectl"]
    if not timedatectl.ok:
        return [CheckResult("Time Synchronization", Status.INFO, NOT_AVAILABLE)]
    synced = "synchronized: yes" in timedatectl.stdout
    return [CheckResult(
        "Time Synchronization",
        _status(synced, Status.WARN),
        "Time synchronized" if synced else "Time may not be synchronized",
    )]


# Fixed display order of the report
CHECK_ORDER = (
    "connectivity",
    "user",
    "os",
    "python3",
    "pip",
    "packages_alpine",
    "packages_debian",
    "resources",
    "network",
    "ssh_security",
    "tools",
    "alpine",
    "debian",
    "docker",
    "time_sync",
)
