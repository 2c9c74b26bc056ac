"""HTTP routers for the blueprint service."""
