"""
Barricade
=========

A local endpoint triage engine.

Features:
- Heuristic threat and privacy classification of files in monitored sectors
- Reversible quarantine and vault dispositions with provenance metadata
- Secure multi-pass shredding and byte-level forensic inspection
- A background sentry that re-evaluates sectors and raises throttled alerts

All processing occurs locally; no file content ever leaves the machine.
"""

__version__ = "0.1.0"
