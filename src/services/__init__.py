"""External service adapters for the assistant."""
