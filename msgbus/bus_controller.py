"""The bus controller: admits endpoints and routes messages between them."""

from __future__ import annotations

import dataclasses
import logging
import secrets
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable

from .errors import BusError, DecodeError, Disconnected
from .label import Label, TrueOp
from .message import (
    ConnectMessage,
    ConnectMessageAck,
    EncodedMessage,
    Message,
    Selector,
    SelectorMode,
)
from .version import version

log = logging.getLogger(__name__)

_REACHABLE_INTERVAL = 30.0


class Remote:
    """An in-process channel to an endpoint; closing it makes sends fail."""

    def __init__(self) -> None:
        self.inbox: deque[EncodedMessage] = deque()
        self._closed = False

    def send(self, encoded: EncodedMessage) -> None:
        if self._closed:
            raise Disconnected()
        self.inbox.append(encoded)

    def close(self) -> None:
        self._closed = True

    def is_dead(self) -> bool:
        return self._closed


@dataclass(eq=False)
class Endpoint:
    id: int
    label: Label
    remote: Remote


def _reply(selector: Selector, ack: ConnectMessageAck, remote: Any) -> None:
    Message(selector, ack).into_encoded().send(remote)


class BusController:
    """Routes messages to admitted endpoints and to the local endpoint.

    ``local_queue`` receives messages addressed to the controller's own
    label via ``put``; a ``put`` raising :class:`Disconnected` means the local
    reader is gone.
    """

    def __init__(
        self,
        label: Label,
        token: str,
        local_queue: Any,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.label = label
        self.token = token
        self._local_queue = local_queue
        self._clock = clock
        self.endpoints: list[Endpoint] = []
        self.message_buffer: list[tuple[float, EncodedMessage]] = []
        self.last_detect_reachable = clock()

    def process(self, encoded: EncodedMessage) -> None:
        """Handle one incoming message, retrying buffered ones on a new connection."""
        now = self._clock()
        remain, connected = self.handle_message(encoded)

        if remain is not None:
            if remain.selector.ttl > 0:
                self.message_buffer.append((now + remain.selector.ttl, remain))
        elif connected and self.message_buffer:
            pending, self.message_buffer = self.message_buffer, []
            for expire, message in pending:
                left, _ = self.handle_message(message)
                if left is not None and expire > now:
                    self.message_buffer.append((expire, left))

        self.detect_reachable(now)
        self.maintain(now)

    def handle_message(self, encoded: EncodedMessage) -> tuple[EncodedMessage | None, bool]:
        """Route a message; return what could not be delivered and whether an endpoint joined."""
        if encoded.selector.uuid == ConnectMessage.UUID:
            return None, self.endpoint_connect(encoded)

        selector = encoded.selector
        unicast = selector.mode is SelectorMode.UNICAST
        routed = False
        online = []
        for endpoint in self.endpoints:
            if routed and unicast:
                online.append(endpoint)
                continue
            if selector.label_op.validate(endpoint.label):
                try:
                    encoded.send(endpoint.remote)
                    routed = True
                except Disconnected:
                    continue
                except BusError:
                    pass
            online.append(endpoint)
        self.endpoints = online

        remain = None
        if (not routed or not unicast) and selector.label_op.validate(self.label):
            try:
                self._local_queue.put(encoded)
            except Disconnected:
                if not routed:
                    remain = encoded
        elif not routed:
            remain = encoded
        return remain, False

    def endpoint_connect(self, encoded: EncodedMessage) -> bool:
        """Admit the sender of a connect message; return whether it was added."""
        remote = encoded.extract_remote()
        if remote is None:
            return False
        selector = dataclasses.replace(encoded.selector)

        try:
            payload = ConnectMessage.decode(ConnectMessage.UUID, encoded.payload_data)
        except DecodeError:
            self._try_reply(selector, ConnectMessageAck.err_version(version()), remote)
            return False

        if not payload.version.compatible(version()):
            self._try_reply(selector, ConnectMessageAck.err_version(version()), remote)
            return False

        if payload.token != self.token:
            self._try_reply(selector, ConnectMessageAck.err_token(), remote)
            return False

        endpoint_id = secrets.randbits(64)
        try:
            _reply(selector, ConnectMessageAck.ok(endpoint_id), remote)
        except BusError as err:
            log.error("connect ack: %r", err)
            return False

        if any(ep.label == payload.label and ep.remote == remote for ep in self.endpoints):
            return False

        self.endpoints.append(Endpoint(endpoint_id, payload.label, remote))
        return True

    @staticmethod
    def _try_reply(selector: Selector, ack: ConnectMessageAck, remote: Any) -> None:
        try:
            _reply(selector, ack, remote)
        except BusError:
            pass

    def detect_reachable(self, now: float) -> None:
        """Every 30 seconds, drop endpoints whose remote is dead."""
        if now - self.last_detect_reachable > _REACHABLE_INTERVAL:
            self.endpoints = [ep for ep in self.endpoints if not ep.remote.is_dead()]
            self.last_detect_reachable = now

    def maintain(self, now: float) -> None:
        """Drop buffered messages whose time to live has passed."""
        self.message_buffer = [(exp, msg) for exp, msg in self.message_buffer if exp > now]


def version_mismatch_reply(remote: Any) -> None:
    """Tell a peer with an unreadable message which version the controller speaks."""
    try:
        _reply(Selector.unicast(TrueOp()), ConnectMessageAck.err_version(version()), remote)
    except BusError:
        pass