"""
Todo Tracker backend package.

Personal todos owned by accounts, with ownership-aware lookups and a
time-windowed "extend due date" operation. The FastAPI application is built by
``todo_tracker.main.create_app``.
"""

__version__ = "0.1.0"
