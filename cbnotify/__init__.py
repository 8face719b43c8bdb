"""cbnotify - Cloud Build to Discord notifier"""
__version__ = "0.1.0"
