"""
Route blueprints for the Performance Observer API.

- system: banner, health check and host metrics
- auth: registration, login and token verification
- performance: performance test records, statistics, trends and comparison
- reports: CSV / Excel / PDF exports
- checklists: test checklists and their items
- schedules: cron-scheduled test definitions
"""
