"""
Core application: shared base model, logging, caching, Celery base task
and the DRF authorization guard.
"""
