"""
Hiring Pipeline Kernel

The candidate pipeline transition engine of an applicant-tracking platform:
- Authorized, validated stage movements over per-job dynamic catalogs
- Atomic enrollment update + append-only movement audit trail
- Headcount closure when the hired stage fills up
- Best-effort engagement events dispatched after commit
"""

__version__ = "0.1.0"
