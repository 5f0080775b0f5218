"""Road Trip Planner backend."""
