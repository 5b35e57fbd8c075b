"""
Durable job queue and retry scheduler.

This package provides:
- Named, typed job definitions with bounded retries and fixed backoff
- A pluggable repository contract with in-memory and SQL backends
- A single-flight periodic scheduler running due instances
- Administrative query, cancel and requeue operations
"""
