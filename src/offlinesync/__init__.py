"""offlinesync - offline-first mutation queue with optimistic merge.

Local writes made while disconnected are queued in a durable key/value
store, overlaid onto cached server snapshots on every read, and replayed
against the remote store once connectivity returns.
"""

__version__ = "0.1.0"
