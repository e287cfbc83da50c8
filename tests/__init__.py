"""
Tests Package.

This package contains test suites for validating the isonav implementation,
including unit tests for geometry, routing and highlight propagation and
integration tests for widget navigation. The tests ensure correctness of the
camera state machine, connector paths and reversible dimming.
"""

# Tests Package
