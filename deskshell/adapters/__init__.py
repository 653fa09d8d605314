"""Adapters package - Bridge between the remote server and the UI.

This package contains the HTTP transport, the live event stream with
its provenance tagging, the event bus, and the local launcher.
"""
from __future__ import annotations

__all__ = [
    "TransportClient",
    "EventStreamManager",
    "ReconnectPolicy",
    "ProvenanceTracker",
    "EventBus",
    "Launcher",
]

from deskshell.adapters.transport import TransportClient
from deskshell.adapters.event_stream import EventStreamManager, ReconnectPolicy
from deskshell.adapters.provenance import ProvenanceTracker
from deskshell.adapters.event_bus import EventBus
from deskshell.adapters.launcher import Launcher
