"""
Locust scenario user classes.

- :mod:`.dashboard` - read-heavy dashboard browsing (lists, filters,
  statistics, trends, comparisons) with occasional logging and exports
- :mod:`.logging_burst` - write-heavy bursts of test logging and deletes

Both inherit from :class:`~tests.performance.scenarios.base.ObserverApiUser`,
which handles registration, login and the per-user record pool.
"""
