# Copyright (c) Syntropy Systems
"""Throughput measurement through the ``speedtest-cli`` tool."""
from __future__ import annotations

import json
import logging
import shutil
import subprocess

from bandsweep.models.results import ThroughputResult

logger = logging.getLogger(__name__)

BITS_PER_MEGABIT = 1_000_000
DNS_FAILURE_MARKER = "Temporary failure in name resolution"


def parse_speedtest_json(stdout: str) -> ThroughputResult:
    """Convert ``speedtest-cli --json`` output (bits/s) to Mbps.

    Returns zeros when the output is missing fields or is not JSON.
    """
    try:
        data = json.loads(stdout)
        return ThroughputResult(
            download=float(data["download"]) / BITS_PER_MEGABIT,
            upload=float(data["upload"]) / BITS_PER_MEGABIT,
            ping=float(data["ping"]),
        )
    except (ValueError, KeyError, TypeError):
        return ThroughputResult()


class SpeedtestCli:
    """Runs the speed test as a subprocess with a time bound."""

    command: list[str]
    timeout: float
    last_error: str | None

    def __init__(
        self,
        command: list[str] | None = None,
        timeout: float = 120.0,
    ) -> None:
        self.command = command or ["speedtest-cli", "--json"]
        self.timeout = timeout
        self.last_error = None

    def measure_throughput(self) -> ThroughputResult:
        """Run one measurement. Any failure yields a zero result."""
        self.last_error = None
        cmd_path = shutil.which(self.command[0])
        if cmd_path is None:
            self.last_error = f"{self.command[0]} not found on PATH"
            logger.warning("Speed test skipped: %s", self.last_error)
            return ThroughputResult()

        try:
            result = subprocess.run(  # noqa: S603
                [cmd_path, *self.command[1:]],
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            self.last_error = f"timed out after {self.timeout:.0f}s"
            logger.warning("Speed test %s", self.last_error)
            return ThroughputResult()
        except OSError as e:
            self.last_error = str(e)
            logger.warning("Speed test could not start: %s", e)
            return ThroughputResult()

        if result.returncode != 0:
            self.last_error = result.stderr.strip() or f"exit code {result.returncode}"
            if DNS_FAILURE_MARKER in result.stderr:
                logger.warning("Speed test failed: DNS resolution error")
            else:
                logger.warning("Speed test failed: %s", self.last_error)
            return ThroughputResult()

        throughput = parse_speedtest_json(result.stdout)
        logger.info(
            "Speed test: %.2f Mbps down, %.2f Mbps up, %.0f ms ping",
            throughput.download,
            throughput.upload,
            throughput.ping,
        )
        return throughput
