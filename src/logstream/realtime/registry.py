"""Subscription registry — which connection listens to which channel.

A channel is a log record's `service`. Each connection has at most one
subscription; subscribing again replaces it. Entries are keyed by
connection id, so nothing is stored on the connection object itself.

The registry also tracks the live-connection set. Both maps are only
touched from the event loop thread, so plain dicts are enough.
"""

from typing import Optional

from logstream.realtime.connection import Connection


class SubscriptionRegistry:
    """Live connections and their subscribed channel."""

    def __init__(self):
        self._connections: dict[str, Connection] = {}
        self._channels: dict[str, str] = {}

    def attach(self, connection: Connection) -> None:
        self._connections[connection.id] = connection

    def detach(self, connection: Connection) -> Optional[str]:
        """Forget a connection. Returns the channel it was subscribed to."""
        self._connections.pop(connection.id, None)
        return self._channels.pop(connection.id, None)

    def subscribe(self, connection: Connection, channel: str) -> Optional[str]:
        """Subscribe to channel, replacing any prior subscription.

        Returns the previous channel, if any. Channel names aren't
        validated; a channel no service logs to simply never matches.
        """
        self._connections.setdefault(connection.id, connection)
        previous = self._channels.get(connection.id)
        self._channels[connection.id] = channel
        return previous

    def unsubscribe(self, connection: Connection) -> Optional[str]:
        return self._channels.pop(connection.id, None)

    def channel_of(self, connection: Connection) -> Optional[str]:
        return self._channels.get(connection.id)

    def connections(self) -> list[Connection]:
        """Snapshot of live connections, safe to iterate while mutating."""
        return list(self._connections.values())

    def subscribers(self, channel: str) -> list[Connection]:
        """Connections subscribed to exactly `channel` (a snapshot)."""
        return [
            self._connections[conn_id]
            for conn_id, subscribed in self._channels.items()
            if subscribed == channel and conn_id in self._connections
        ]

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    @property
    def subscriber_count(self) -> int:
        return len(self._channels)

    def __contains__(self, connection: Connection) -> bool:
        return connection.id in self._connections
