"""HTTP API for ThotNet."""
