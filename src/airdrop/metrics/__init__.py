"""
Merkle Airdrop Distributor - Metrics Module

Prometheus metrics for claims, owner operations and tree builds.
"""

from airdrop.metrics.airdrop_metrics import (
    AirdropMetrics,
    get_airdrop_metrics,
)

__all__ = [
    "AirdropMetrics",
    "get_airdrop_metrics",
]
