"""Blueprint upload and processing service."""
