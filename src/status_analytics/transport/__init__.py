"""HTTP transport for the status analytics service."""
