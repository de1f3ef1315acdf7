"""
subaccounts.types — value types shared by the ledger and its programs.
"""

from .events import EventField, EventSchema, LogEvent, filter_events
from .message import Message

__all__ = ["EventField", "EventSchema", "LogEvent", "filter_events", "Message"]
