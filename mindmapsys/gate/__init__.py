"""Access gate: credential checks and request quotas."""

from __future__ import annotations

from .service import AccessGate, Admission, RateWindowTable

__all__ = ["AccessGate", "Admission", "RateWindowTable"]
