"""
Producer module.
Contains the backlog-bounded production loop and consumer notification.
"""

from taskflow.producer.loop import Producer
from taskflow.producer.notifier import ConsumerNotifier

__all__ = ["Producer", "ConsumerNotifier"]
