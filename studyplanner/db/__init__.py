"""Database models, schema and repositories for the study planner."""
