"""
Client configuration.

Read from the environment (or an env file) with django-environ, the same
reader the server settings use. Nothing here imports Django itself.

Environment:
    CHAT_API_URL                 REST base, e.g. http://localhost:8000/api/v1
    CHAT_WS_URL                  Websocket endpoint, e.g. ws://localhost:8000/ws/chat/
    CHAT_TOKEN                   JWT access token
    CHAT_REJOIN_INTERVAL         Seconds between room rejoin sweeps (45)
    CHAT_FRIEND_POLL_INTERVAL    Seconds between friend request polls (12)
    CHAT_REQUEST_TIMEOUT         REST timeout in seconds (15)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlencode

import environ


@dataclass(frozen=True)
class ClientConfig:
    api_url: str
    ws_url: str
    token: str = ""
    rejoin_interval: float = 45.0
    friend_poll_interval: float = 12.0
    request_timeout: float = 15.0

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> ClientConfig:
        env = environ.Env()
        if env_file is not None:
            environ.Env.read_env(str(env_file))

        return cls(
            api_url=env.str("CHAT_API_URL", default="http://localhost:8000/api/v1").rstrip("/"),
            ws_url=env.str("CHAT_WS_URL", default="ws://localhost:8000/ws/chat/"),
            token=env.str("CHAT_TOKEN", default="").strip(),
            rejoin_interval=env.float("CHAT_REJOIN_INTERVAL", default=45.0),
            friend_poll_interval=env.float("CHAT_FRIEND_POLL_INTERVAL", default=12.0),
            request_timeout=env.float("CHAT_REQUEST_TIMEOUT", default=15.0),
        )

    @property
    def ws_connect_url(self) -> str:
        """Websocket URL with the access token in the query string."""
        if not self.token:
            return self.ws_url
        separator = "&" if "?" in self.ws_url else "?"
        return f"{self.ws_url}{separator}{urlencode({'token': self.token})}"
