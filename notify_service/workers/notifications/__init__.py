"""Notification delivery worker."""
