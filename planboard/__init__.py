"""
Planboard - Core Package

The engine behind a personal planning dashboard: who gets premium features
right now, whether one more calendar event is allowed on the free tier, and
what a month of income and expenses adds up to.

DESIGN PRINCIPLES:
1. One resolver decides the tier; nothing re-derives it in place
2. Time and identity are explicit inputs, never read from globals
3. A malformed record is skipped and counted, never fatal
4. Every gating decision is auditable
5. The backend is swappable
"""

# Configures local structured logs on first import
from planboard.audit import configure_logging  # noqa: F401

__version__ = "1.0.0"
__author__ = "Planboard Team"
