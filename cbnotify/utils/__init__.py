"""Utility modules for cbnotify."""
