from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Inventory (absolute or relative to CWD)
    inventory_file: str = "inventory.yaml"
    readiness_group: str = "debian"
    deploy_group: str = "debian_migration_targets"

    # SSH transport
    ssh_user: str = "root"
    ssh_port: int = 22
    ssh_identity_file: str = ""
    ssh_connect_timeout: int = 10  # seconds, passed as -o ConnectTimeout

    # Probe battery
    probe_timeout: int = 30  # seconds per probe unless the probe overrides it
    essential_tools: list[str] = [
        "curl", "wget", "tar", "gzip", "unzip", "git", "rsync", "nano", "vim",
    ]
    external_check_url: str = "https://8.8.8.8"
    https_check_url: str = "https://www.google.com"
    dns_lookup_host: str = "google.com"
    docker_test_image: str = "hello-world:latest"

    # Host fan-out
    max_workers: int = 4

    # Report layout
    name_width: int = 30

    # SSH key deployment
    ssh_key_path: str = "/root/.ssh/id_rsa"
    ssh_private_key_content: str = ""  # usually injected by the job launcher

    # Logging
    log_level: str = "INFO"


settings = Settings()
