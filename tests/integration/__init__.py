"""
API test package for the Performance Observer.

Tests use the Flask test client and cover:
- Record logging, listing, filtering and deletion
- Statistics, trends and comparison
- Input validation and error envelopes
- Reports, checklists and scheduled tests
"""
