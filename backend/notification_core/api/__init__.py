"""HTTP API for the notification engine."""
