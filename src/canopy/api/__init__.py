"""HTTP boundary: FastAPI app, routes and schemas."""
