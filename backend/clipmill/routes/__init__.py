"""HTTP routers for the clipmill API."""
