"""
Property-Based Testing Suite

Hypothesis tests for the container's resolution and watcher invariants.
"""
