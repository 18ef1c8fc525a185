"""Backend clients, persistence scheduling and error types."""
