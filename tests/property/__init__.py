# tests/property/__init__.py
"""Property-based tests for mrpipe.

Property-based testing validates invariants that must hold for ALL inputs,
not just the specific examples we think of.

Test categories:
- ordinals: case-insensitive resolution, absence, caching
- injection: row shape and placement for arbitrary schemas
"""
