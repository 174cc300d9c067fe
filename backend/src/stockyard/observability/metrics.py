"""Prometheus metrics for the data-access core."""

from prometheus_client import Counter, Histogram

# Reference allocation metrics
reference_allocations_total = Counter(
    "stockyard_reference_allocations_total",
    "Reference numbers handed out",
    ["entity_type", "lock_strategy"]
)

reference_allocation_conflicts_total = Counter(
    "stockyard_reference_allocation_conflicts_total",
    "Allocation attempts that collided with a concurrent writer",
    ["entity_type", "outcome"]  # outcome: retried|exhausted
)

reference_allocation_duration_seconds = Histogram(
    "stockyard_reference_allocation_duration_seconds",
    "Time spent allocating one reference number, lock wait included",
    ["entity_type"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0]
)

# Tenant resolution metrics
scope_resolutions_total = Counter(
    "stockyard_scope_resolutions_total",
    "Resolved request scopes",
    ["scope_kind"]  # company|branch|branch_set|blocked
)

# List query metrics
list_queries_total = Counter(
    "stockyard_list_queries_total",
    "List queries executed by the query builder",
    ["entity_type", "paginated"]
)
