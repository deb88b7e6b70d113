"""
Prometheus Metrics Registry

Provides Prometheus-compatible metrics for:
- History entries recorded, suppressed by the minimum gap, rolled over and reset
- Eve history protocol traffic (requests, streamed entries, unknown commands)
"""
import logging
from prometheus_client import (
    Counter, Gauge, Info,
    CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST
)

logger = logging.getLogger(__name__)

# Create a custom registry to avoid conflicts with default registry
REGISTRY = CollectorRegistry()

# ============================================================================
# Application Info
# ============================================================================

app_info = Info(
    'evehistory',
    'History service information',
    registry=REGISTRY
)

# ============================================================================
# History Store Metrics
# ============================================================================

history_entries_total = Counter(
    'history_entries_total',
    'History entries written or suppressed',
    ['status'],  # recorded, suppressed
    registry=REGISTRY
)

history_rollovers_total = Counter(
    'history_rollovers_total',
    'Times a history ring buffer wrapped around',
    registry=REGISTRY
)

history_resets_total = Counter(
    'history_resets_total',
    'Times a history store was cleared',
    ['reason'],  # startup, invalid, manual
    registry=REGISTRY
)

# ============================================================================
# Eve Protocol Metrics
# ============================================================================

eve_history_requests_total = Counter(
    'eve_history_requests_total',
    'History read requests received from the Eve app',
    ['evetype'],
    registry=REGISTRY
)

eve_entries_streamed_total = Counter(
    'eve_entries_streamed_total',
    'History entries sent over the Eve entries characteristic',
    ['evetype'],
    registry=REGISTRY
)

eve_unknown_commands_total = Counter(
    'eve_unknown_commands_total',
    'Configuration commands received that have no handler',
    ['evetype'],
    registry=REGISTRY
)

eve_linked_accessories = Gauge(
    'eve_linked_accessories',
    'Accessories exposing the Eve history service',
    registry=REGISTRY
)

# ============================================================================
# Helper Functions
# ============================================================================


def init_metrics(version: str = "1.0.0"):
    """
    Initialize metrics with application info.

    Args:
        version: Application version string
    """
    app_info.info({
        'version': version,
        'name': 'evehistory'
    })

    logger.info("Prometheus metrics initialized", extra={"version": version})


def record_history_entry(recorded: bool):
    """
    Record the outcome of a history write.

    Args:
        recorded: False when the minimum time gap suppressed the entry
    """
    history_entries_total.labels(status="recorded" if recorded else "suppressed").inc()


def record_history_rollover():
    """Record a ring buffer wrap."""
    history_rollovers_total.inc()


def record_history_reset(reason: str):
    """
    Record a history reset.

    Args:
        reason: Why the store was cleared (startup, invalid, manual)
    """
    history_resets_total.labels(reason=reason).inc()


def record_eve_request(evetype: str):
    """Record a history read request from the Eve app."""
    eve_history_requests_total.labels(evetype=evetype).inc()


def record_eve_entries_streamed(evetype: str, count: int):
    """
    Record entries sent in one read of the entries characteristic.

    Args:
        evetype: Eve profile of the accessory
        count: Number of history records included in the response
    """
    if count > 0:
        eve_entries_streamed_total.labels(evetype=evetype).inc(count)


def record_eve_unknown_command(evetype: str):
    """Record a configuration command without a handler."""
    eve_unknown_commands_total.labels(evetype=evetype).inc()


def update_eve_linked_accessories(delta: int = 1):
    """Adjust the number of accessories linked to the Eve history service."""
    eve_linked_accessories.inc(delta)


def get_metrics() -> bytes:
    """
    Generate Prometheus metrics output.

    Returns:
        Prometheus text format metrics
    """
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST
