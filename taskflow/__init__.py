"""
Taskflow

A producer/consumer pair coordinated through a durable task table, with
backlog-bounded production and rate-limited, atomically-claimed consumption.
"""

__version__ = "1.0.1"
