"""FastAPI application package for GitNarrator."""
