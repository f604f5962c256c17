"""
Services Package

Long-running background services:
- event_bus: In-process pub/sub feeding WebSocket clients
- poll_scheduler: Periodic fetch -> merge -> diff -> publish -> commit loop
"""
