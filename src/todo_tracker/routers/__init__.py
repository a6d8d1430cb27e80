"""HTTP routers for the Todo Tracker API."""
