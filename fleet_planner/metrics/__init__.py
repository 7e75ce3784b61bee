"""
Fleet metrics: status rollups, planning counters and operator alerts.

Modules
-------
aggregator : recompute() + apply_schedule() - pure functions over a snapshot.
alerts     : generate_alerts() - certificate, job-card, availability and
             cleaning warnings, sorted by priority.
"""
