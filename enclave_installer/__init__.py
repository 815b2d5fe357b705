"""Enclave agent installer (Python-first, reconciliation-driven).

Core design goals:
- Every step re-reads the live system and is safe to re-run
- Never reinstall the installed version or overwrite an existing identity
- Architecture- and distro-aware package decisions
- Enrolment key passed explicitly and never logged
- Centralized logging
"""

__all__ = []
