"""
Daily Health Journal - Per-day health records reconciled with an external provider.

Keeps a local store of one record per calendar day consistent with an external
health-metrics source: field-level provenance, fill-empty/overwrite merging,
backfill of missing days and rolling weekly step totals.
"""

__version__ = "0.1.0"
