"""Celery application and periodic sweeps."""
