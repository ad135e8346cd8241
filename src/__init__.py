"""Document generation pipeline."""
