"""Event channel and reporting sinks for hookpack."""

from hookpack.sink.base import ReportingSink
from hookpack.sink.channel import ChannelDiagnostic, EventChannel
from hookpack.sink.filesystem import FileSystemSink

__all__ = [
    "ReportingSink",
    "ChannelDiagnostic",
    "EventChannel",
    "FileSystemSink",
]
