"""logstream — real-time log ingestion and fan-out.

Producers POST structured log events, the service stores them and pushes
each one to every WebSocket consumer subscribed to the event's service.
Stored events can be queried by type, service and time range.
"""

__version__ = "0.1.0"
