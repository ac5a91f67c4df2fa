"""Protocol notifier (the transport layer implements it: one duplex channel per connection)"""

from typing import Any, Protocol


class Notifier(Protocol):
    """Outbound side of the transport boundary"""

    def send(self, connection_id: str, event: str, payload: dict[str, Any]) -> None:
        """Queue an event for a single connection. Fire-and-forget: must not block and must not raise for unknown connections."""
        ...
