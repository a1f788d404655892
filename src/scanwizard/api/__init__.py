"""REST API for workflow validation, filename checks, and sessions."""
