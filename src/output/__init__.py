"""HTML formatting and length sizing helpers."""
