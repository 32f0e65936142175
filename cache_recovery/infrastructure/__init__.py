"""Infrastructure adapters: PostgreSQL, Redis/RQ, in-memory."""
