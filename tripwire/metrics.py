from __future__ import annotations

from prometheus_client import Counter, Histogram

# Events handed to the sink, by detector and severity
SECURITY_EVENTS = Counter(
    "tripwire_security_events_total",
    "Security events emitted by the request inspector",
    ["category", "severity"],
)

# Sensitive-area audit records, by area tag
DATA_ACCESS_RECORDS = Counter(
    "tripwire_data_access_total",
    "Authenticated accesses to sensitive areas",
    ["area"],
)

# Sink calls that raised (never surfaced to the client)
SINK_ERRORS = Counter(
    "tripwire_sink_errors_total",
    "Count of failed security sink writes",
)

# Bounded queue overflow
EVENTS_DROPPED = Counter(
    "tripwire_events_dropped_total",
    "Security events dropped because the sink queue was full",
)

FORM_SCAN_SKIPPED = Counter(
    "tripwire_form_scan_skipped_total",
    "Form bodies that were not scanned",
    ["reason"],
)

# Wall-clock time of the downstream call, per inspected request
REQUEST_LATENCY_SECONDS = Histogram(
    "tripwire_request_latency_seconds",
    "Latency of inspected requests in seconds",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)
