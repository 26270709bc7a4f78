"""Join-time authorization gates."""

from roomsync.auth.base import AuthGate, AuthVerdict, DefaultAuthGate
from roomsync.auth.mock import MockAuthGate

__all__ = ["AuthGate", "AuthVerdict", "DefaultAuthGate", "MockAuthGate"]
