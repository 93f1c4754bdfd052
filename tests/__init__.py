"""Test package for SGF Flow.

This package contains all test modules organized by test type:
- unit/: Unit tests for config, storage, indexing, API and CLI
- components/: Component tests for the SGF core with real implementations
- integration/: Integration tests through the HTTP API
- e2e/: End-to-end tests from files on disk to replayed boards
"""
