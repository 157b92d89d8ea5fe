"""
Notification classification, prioritization and delivery-routing engine.

Turns raw chat, mail and system events into classified notification
records, keeps notification/preference state in process memory and
decides per-channel delivery.
"""

__version__ = "1.0.0"
