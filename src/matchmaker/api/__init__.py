"""FastAPI boundary: routes, schemas, dependencies and error mapping."""
