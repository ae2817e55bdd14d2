"""HTTP blueprints. All routes live under /api/v1."""
