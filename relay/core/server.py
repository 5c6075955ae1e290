"""Wiring of the relay components shared by both transports."""

import time

from relay.core.activity import ActivityFeed
from relay.core.config import Settings
from relay.core.message_log import MessageLog
from relay.core.registry import Registry
from relay.core.router import Router
from relay.core.sweeper import LivenessSweeper
from relay.transports.polling_transport import PollingTransport
from relay.transports.websocket_transport import PushTransport


class RelayServer:
    """One Registry, one Router and the two transports built around them."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.started_at = time.monotonic()

        self.registry = Registry()
        self.message_log = MessageLog(
            max_messages=settings.message_log_max,
            max_age=settings.message_log_max_age or None
        )
        self.activity = ActivityFeed(max_pending=settings.activity_queue_size)
        self.router = Router(self.registry, self.message_log, self.activity)

        self.push = PushTransport(
            self.registry, self.router,
            send_timeout=settings.send_timeout,
            retain_chat=settings.retain_push_chat
        )
        self.polling = PollingTransport(self.registry, self.router, self.message_log)
        self.sweeper = LivenessSweeper(
            self.registry, self.router, self.push.deliver,
            push_interval=settings.push_sweep_interval,
            poll_interval=settings.poll_sweep_interval,
            poll_timeout=settings.poll_client_timeout,
            announce_poll_timeouts=settings.announce_poll_timeouts,
            message_log=self.message_log
        )

    @property
    def uptime(self) -> float:
        """Seconds since the server was created."""
        return time.monotonic() - self.started_at
