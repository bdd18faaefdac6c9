# Copyright (c) Syntropy Systems
"""Adapters for the router and the throughput measurement tool."""

from bandsweep.adapters.base import CompositeMetrics, DeviceAdapter, MetricsAdapter
from bandsweep.adapters.router import RouterClient, band_mask, enb_id_from_cell_id
from bandsweep.adapters.speedtest import SpeedtestCli, parse_speedtest_json

__all__ = [
    "CompositeMetrics",
    "DeviceAdapter",
    "MetricsAdapter",
    "RouterClient",
    "SpeedtestCli",
    "band_mask",
    "enb_id_from_cell_id",
    "parse_speedtest_json",
]
