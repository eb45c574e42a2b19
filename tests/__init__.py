"""
CredLink Test Suite
===================

Test organization:
- tests/unit/          - Unit tests for the core library (mock proving backend)
- tests/services/      - HTTP tests through ASGITransport

Run tests:
    pytest                          # All tests
    pytest tests/unit               # Unit tests only
"""
