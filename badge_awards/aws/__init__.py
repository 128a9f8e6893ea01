"""AWS integration components"""

from .event_sink import LoggingEventSink, SqsEventSink, build_event_sink

__all__ = ["LoggingEventSink", "SqsEventSink", "build_event_sink"]
