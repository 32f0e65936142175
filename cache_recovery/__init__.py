"""
cache_recovery: recovery and resumption of batch cache-generation jobs.

Layers:
  - domain: entities and ports
  - application: recovery use cases
  - infrastructure: Postgres/in-memory stores, RQ queues, retry
  - worker / interfaces: RQ worker process and operator CLI
"""

__version__ = "0.1.0"
