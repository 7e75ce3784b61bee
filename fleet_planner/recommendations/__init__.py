"""
Recommendation engine: converts a fleet snapshot into per-trainset
ready/standby/maintenance/critical recommendations with reasoning.

Modules
-------
rules     : Verdict dataclass + rule cascade + secondary annotations
            - pure functions, no DB or I/O.
engine    : recommend() - validates one trainset and scores it.
scheduler : schedule_all() + balance_ready_standby() + build_summary().
reporter  : write_schedule_json() - file output.
"""
