"""
Async client for the chat backend.

The client keeps a device's local view of chat consistent with the server
across reconnects and decides how each incoming message is surfaced
(sound, OS notification, badge).

Modules:
    config: ClientConfig (read from the environment)
    api: ChatApiClient, the REST client (httpx)
    transport: RealtimeConnection, the auto-reconnecting websocket
    reconciliation: ReconciliationLayer, room rejoin and local message lists
    delivery: DeliveryBridge and the surface protocols it drives
    unread: UnreadCounter and its local implementation
    state: StateStore implementations (memory, JSON file)
    compose: Composer, draft handling around sends

Usage:
    config = ClientConfig.from_env()
    async with ChatApiClient(config) as api:
        store = JsonFileStateStore(Path("~/.chat-state.json").expanduser())
        unread = LocalUnreadCounter(store)
        bridge = DeliveryBridge(local_user_id=1, unread=unread, store=store)
        layer = ReconciliationLayer(api=api, bridge=bridge, unread=unread,
                                    store=store, config=config)
        connection = RealtimeConnection(config, on_event=layer.handle_event,
                                        on_connect=layer.on_reconnect)
        layer.attach(connection)
        await layer.start()
        await connection.run()
"""

from chatclient.api import (
    ChatApiAuthError,
    ChatApiClient,
    ChatApiError,
    ChatApiNotFoundError,
    ChatApiUnavailableError,
)
from chatclient.compose import Composer
from chatclient.config import ClientConfig
from chatclient.delivery import DeliveryBridge, DeliveryOutcome
from chatclient.reconciliation import ReconciliationLayer
from chatclient.state import JsonFileStateStore, MemoryStateStore, StateStore
from chatclient.transport import RealtimeConnection
from chatclient.unread import LocalUnreadCounter, UnreadCounter

__all__ = [
    "ChatApiAuthError",
    "ChatApiClient",
    "ChatApiError",
    "ChatApiNotFoundError",
    "ChatApiUnavailableError",
    "ClientConfig",
    "Composer",
    "DeliveryBridge",
    "DeliveryOutcome",
    "JsonFileStateStore",
    "LocalUnreadCounter",
    "MemoryStateStore",
    "RealtimeConnection",
    "ReconciliationLayer",
    "StateStore",
    "UnreadCounter",
]
