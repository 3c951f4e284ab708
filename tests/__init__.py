"""
Tests package - test suite for the CSR approver.

Contains:
- unit/: Unit tests for individual components, no cluster required
"""
