"""Platform-wide core types."""
