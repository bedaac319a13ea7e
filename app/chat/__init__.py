"""
Chat app for realtime direct messaging.

This app handles:
- Direct conversations and message history (REST)
- Presence, room membership and typing over one websocket
- Fan-out of message:new / message:updated / message:deleted to rooms

Related apps:
    - authentication: User model, presence state
    - friends: Friend requests (pending count feeds the client badge)

WebSocket Support:
    Uses Django Channels for real-time communication.
    See consumers.py for the websocket handler, registry.py for live
    connection bookkeeping and fanout.py for persist-then-broadcast.

Usage:
    from chat.fanout import MessageFanout
    from chat.services import ConversationService

    result = ConversationService.get_or_create_direct(user, other_user_id=2)
    conversation, created = result.data

    MessageFanout().send_message(conversation.id, user.id, "Hello!")
"""
