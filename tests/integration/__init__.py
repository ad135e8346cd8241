"""Integration tests for the document generation pipeline.

These tests verify end-to-end functionality including:
- Generic and academic runs with a mock chat model
- Resume after failures and reopening of terminal work items
- Batches through the worker pool
- The Flask API
"""
