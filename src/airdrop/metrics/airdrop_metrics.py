"""
Merkle Airdrop Distributor - Metrics

Prometheus metrics for the distributor.

Metrics Categories:
- Claims by result and tokens paid out
- Root rotations and withdrawals
- Reserve balance
- Merkle tree building and proof verification
"""

from prometheus_client import Counter, Gauge, Histogram, Info

import structlog

logger = structlog.get_logger(__name__)


class AirdropMetrics:
    """
    Centralized metrics for the airdrop distributor.

    Provides visibility into:
    - Claim outcomes and payout volume
    - Owner operations
    - Tree builds and verification results
    """

    def __init__(self) -> None:
        """Initialize all airdrop metrics."""
        self._init_claim_metrics()
        self._init_owner_metrics()
        self._init_merkle_metrics()
        self._init_info_metrics()

    def _init_claim_metrics(self) -> None:
        """Initialize claim metrics."""
        self.claims_total = Counter(
            "airdrop_claims_total",
            "Claim attempts by result",
            ["result"],
        )

        self.tokens_claimed = Counter(
            "airdrop_tokens_claimed_total",
            "Total tokens transferred to claimants",
        )

        self.reserve_balance = Gauge(
            "airdrop_reserve_balance",
            "Token balance held by the distributor",
        )

    def _init_owner_metrics(self) -> None:
        """Initialize owner operation metrics."""
        self.root_rotations = Counter(
            "airdrop_root_rotations_total",
            "Successful Merkle root rotations",
        )

        self.withdrawals = Counter(
            "airdrop_withdrawals_total",
            "Owner withdrawals of the remaining reserve",
        )

        self.owner_rejections = Counter(
            "airdrop_owner_rejections_total",
            "Rejected owner operations",
            ["operation", "reason"],
        )

    def _init_merkle_metrics(self) -> None:
        """Initialize Merkle tree metrics."""
        self.merkle_build_duration = Histogram(
            "airdrop_merkle_build_duration_seconds",
            "Merkle tree build time",
            buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0],
        )

        self.merkle_tree_size = Histogram(
            "airdrop_merkle_tree_size",
            "Number of allocations in a built tree",
            buckets=[10, 100, 1000, 10000, 100000, 1000000],
        )

        self.merkle_verifications = Counter(
            "airdrop_merkle_verifications_total",
            "Merkle proof verifications",
            ["result"],
        )

    def _init_info_metrics(self) -> None:
        """Initialize info metrics."""
        self.service_info = Info(
            "airdrop_service",
            "Airdrop distributor information",
        )

    # Convenience methods

    def record_claim(self, result: str, amount: int = 0) -> None:
        """Record a claim attempt; amount only counts on success."""
        self.claims_total.labels(result=result).inc()
        if result == "success" and amount:
            self.tokens_claimed.inc(amount)

    def record_root_rotation(self) -> None:
        self.root_rotations.inc()

    def record_withdrawal(self) -> None:
        self.withdrawals.inc()

    def record_owner_rejection(self, operation: str, reason: str) -> None:
        self.owner_rejections.labels(operation=operation, reason=reason).inc()

    def update_reserve(self, balance: int) -> None:
        """Update reserve gauge."""
        self.reserve_balance.set(balance)

    def record_merkle_build(self, duration: float, tree_size: int) -> None:
        """Record Merkle tree build."""
        self.merkle_build_duration.observe(duration)
        self.merkle_tree_size.observe(tree_size)

    def record_merkle_verification(self, valid: bool) -> None:
        """Record Merkle proof verification."""
        result = "valid" if valid else "invalid"
        self.merkle_verifications.labels(result=result).inc()

    def set_service_info(self, version: str, environment: str, state_backend: str) -> None:
        """Set service info labels."""
        self.service_info.info({
            "version": version,
            "environment": environment,
            "state_backend": state_backend,
        })


# Singleton instance
_airdrop_metrics: AirdropMetrics | None = None


def get_airdrop_metrics() -> AirdropMetrics:
    """Get global airdrop metrics instance."""
    global _airdrop_metrics
    if _airdrop_metrics is None:
        _airdrop_metrics = AirdropMetrics()
    return _airdrop_metrics
