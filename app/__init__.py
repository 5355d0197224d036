"""
FastAPI Application Package

Entry point for the backend: REST endpoints, the snapshot WebSocket and the
static widget front-end.
"""
