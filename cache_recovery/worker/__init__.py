"""Background worker: RQ jobs, process entrypoint and health endpoints."""
