"""Prometheus metrics for the pedometer service."""

from prometheus_client import Counter, Gauge

samples_processed_total = Counter(
    "pedometer_samples_processed_total",
    "Acceleration samples passed to the step detector",
)
steps_total = Counter(
    "pedometer_steps_total",
    "Steps registered by the step detector",
)
commands_total = Counter(
    "pedometer_commands_total",
    "Control commands handled by the tracking state machine",
    ["command"],
)
tracking_running = Gauge(
    "pedometer_tracking_running",
    "1 while tracking is running, 0 otherwise",
)
