"""HTTP API (FastAPI) for UniStream."""
