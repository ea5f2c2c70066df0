#!/usr/bin/env python3
"""Prepare a checkout for running the receipt relay under systemd.

Writes a starter ``.env`` (never overwriting one), creates the log folder and
renders ``receipt-relay.service``. With ``--install-service`` the unit is
copied into /etc/systemd/system and enabled.
"""

import argparse
import getpass
import subprocess
import sys
from pathlib import Path

SERVICE_NAME = "receipt-relay"

ENV_TEMPLATE = """# Receipt relay

# Leave SERIAL_PORT empty to pick a device interactively at startup
SERIAL_PORT=/dev/rfcomm0
BAUDRATE=9600
MOCK_PRINTER=false
CONNECT_RETRIES=5
CONNECT_RETRY_DELAY=2.0
CODEPAGE=cp852
CODEPAGE_ID=18
DOUBLE_HEIGHT_COMMAND=gs
MAX_RASTER_WIDTH=576
WS_HOST=0.0.0.0
WS_PORT=8032
LOG_DIR=logs
LOG_LEVEL=INFO
"""


def get_systemd_service_content(base: Path, user: str) -> str:
    """Unit file that runs server.py from the checkout's venv."""
    return f"""[Unit]
Description=Receipt relay print server
After=network.target bluetooth.target

[Service]
Type=simple
User={user}
WorkingDirectory={base}
ExecStart={base}/venv/bin/python server.py
Restart=always
RestartSec=10

[Install]
WantedBy=multi-user.target
"""


def write_env(base: Path) -> bool:
    """Write the .env template unless one exists; True if written."""
    env_path = base / ".env"
    if env_path.exists():
        print(f"Keeping existing config: {env_path}")
        return False
    env_path.write_text(ENV_TEMPLATE, encoding="utf-8")
    print(f"Created config: {env_path} (set SERIAL_PORT before running)")
    return True


def install_service(service_path: Path) -> None:
    """Copy the unit into systemd and enable it; exits on failure."""
    commands = [
        ["sudo", "cp", str(service_path), "/etc/systemd/system/"],
        ["sudo", "systemctl", "daemon-reload"],
        ["sudo", "systemctl", "enable", SERVICE_NAME],
    ]
    try:
        for cmd in commands:
            subprocess.run(cmd, check=True)
    except (OSError, subprocess.CalledProcessError) as e:
        print(f"Service installation failed: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"Service enabled. Start with: sudo systemctl start {SERVICE_NAME}")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--install-service", action="store_true", help="install and enable the unit (uses sudo)")
    parser.add_argument("--user", default=getpass.getuser(), help="account the service runs as")
    parser.add_argument("--base", type=Path, default=Path(__file__).resolve().parent, help="project directory")
    args = parser.parse_args(argv)

    (args.base / "logs").mkdir(exist_ok=True)
    write_env(args.base)

    service_path = args.base / f"{SERVICE_NAME}.service"
    service_path.write_text(get_systemd_service_content(args.base, args.user), encoding="utf-8")
    print(f"Wrote {service_path}")

    if args.install_service:
        install_service(service_path)


if __name__ == "__main__":
    main()
