"""Notification delivery pipeline: templates, recipients, preferences, push transport, history."""
