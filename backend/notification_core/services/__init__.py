"""Notification engine services."""
