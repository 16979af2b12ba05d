"""Concurrent job-feed watcher with checkpointed change detection."""

__version__ = "0.1.0"
