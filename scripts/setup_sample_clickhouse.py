"""Utility that launches a sample ClickHouse Docker container for chpool."""

from __future__ import annotations

import argparse
import subprocess
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from chpool.config import CONFIG_FILE, ConnectionConfig, load_config, save_config

DEFAULT_CONTAINER = "chpool-sample-clickhouse"
DEFAULT_PORT = 18123
DEFAULT_PASSWORD = "chpool"
DEFAULT_DB = "chpool_demo"
DEFAULT_USER = "chpool"
DOCKER_IMAGE = "clickhouse/clickhouse-server:24.3-alpine"


def run(cmd: list[str], *, check: bool = True, **kwargs) -> subprocess.CompletedProcess[str]:
    print("$", " ".join(cmd))
    return subprocess.run(cmd, check=check, text=True, **kwargs)


def container_exists(name: str) -> bool:
    result = subprocess.run(
        ["docker", "ps", "-a", "--filter", f"name={name}", "--format", "{{.ID}}"],
        text=True,
        capture_output=True,
    )
    return bool(result.stdout.strip())


def start_container(name: str, port: int, password: str, database: str, user: str) -> None:
    if container_exists(name):
        print(f"Container '{name}' already exists. Reusing it.")
        run(["docker", "start", name], check=False)
    else:
        run(
            [
                "docker",
                "run",
                "-d",
                "--name",
                name,
                "--ulimit",
                "nofile=262144:262144",
                "-e",
                f"CLICKHOUSE_DB={database}",
                "-e",
                f"CLICKHOUSE_USER={user}",
                "-e",
                f"CLICKHOUSE_PASSWORD={password}",
                "-p",
                f"{port}:8123",
                DOCKER_IMAGE,
            ]
        )
    wait_for_start(name, user, password)


def wait_for_start(name: str, user: str, password: str, retries: int = 30, delay: float = 1.0) -> None:
    for _ in range(retries):
        result = subprocess.run(
            ["docker", "exec", name, "clickhouse-client", "--user", user, "--password", password, "--query", "SELECT 1"],
            text=True,
            capture_output=True,
        )
        if result.returncode == 0:
            return
        time.sleep(delay)
    print("Warning: ClickHouse did not answer SELECT 1; continuing anyway.")


def seed_data(name: str, database: str, user: str, password: str) -> None:
    sql = f"""
    CREATE TABLE IF NOT EXISTS {database}.events (
        id UInt64,
        name String,
        created_at DateTime DEFAULT now()
    ) ENGINE = MergeTree ORDER BY id;
    INSERT INTO {database}.events (id, name) VALUES (1, 'signup'), (2, 'login'), (3, 'purchase');
    """.strip()

    run(
        [
            "docker",
            "exec",
            "-i",
            name,
            "clickhouse-client",
            "--user",
            user,
            "--password",
            password,
            "--multiquery",
        ],
        input=sql,
    )


def update_config(port: int, user: str, database: str, password: str) -> None:
    config = load_config()
    if config.port == port and config.database == database:
        print(f"{CONFIG_FILE} already points at the sample server; leaving as-is.")
        return
    updated = config.model_copy(
        update={
            "hostname": "localhost",
            "port": port,
            "database": database,
            "username": user,
            "password": password,
        }
    )
    save_config(updated)
    print(f"Wrote sample connection settings to {CONFIG_FILE}.")


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--container", default=DEFAULT_CONTAINER, help="Docker container name")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="Host port to expose the HTTP interface on")
    parser.add_argument("--password", default=DEFAULT_PASSWORD, help="ClickHouse password")
    parser.add_argument("--database", default=DEFAULT_DB, help="Database name to create")
    parser.add_argument("--user", default=DEFAULT_USER, help="Database user")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or sys.argv[1:])
    try:
        start_container(args.container, args.port, args.password, args.database, args.user)
        seed_data(args.container, args.database, args.user, args.password)
    except FileNotFoundError:
        print("Docker is not installed or not on PATH.")
        return 1
    update_config(args.port, args.user, args.database, args.password)
    redacted = ConnectionConfig(
        port=args.port, database=args.database, username=args.user, password=args.password
    ).redacted_connection_string()
    print(f"Sample ClickHouse is ready. Connection string: {redacted}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
