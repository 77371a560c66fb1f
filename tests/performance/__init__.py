"""
Performance testing package (Locust-based).

Contains Locust user classes and helper utilities that load-test the
Performance Observer JSON API against a running server.  These modules are
not collected by pytest; run them with the ``locust`` CLI.
"""
