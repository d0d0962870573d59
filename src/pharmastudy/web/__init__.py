"""Web API package (FastAPI)."""
