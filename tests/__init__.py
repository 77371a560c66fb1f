"""
Test suite for the Performance Observer service.

This package contains:
- unit/: Pure analysis, report, scheduling, token and model tests
- integration/: HTTP endpoint tests using the Flask test client
- security/: Authentication, owner scoping and injection probes
- performance/: Locust load scenarios run against a live server
"""
