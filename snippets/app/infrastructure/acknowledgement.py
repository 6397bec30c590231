"""Ack/nack handle that accepts exactly one terminal decision per delivery."""
from __future__ import annotations

import threading

from loguru import logger


class SettleOnceMessage:
    """Base for ReceivedMessage adapters.

    The first ack() or nack() is forwarded to the transport; later calls are
    ignored. Safe to call from any worker thread.
    """

    def __init__(self) -> None:
        self._settle_lock = threading.Lock()
        self._decision: str | None = None

    @property
    def message_id(self) -> str:
        raise NotImplementedError

    @property
    def decision(self) -> str | None:
        return self._decision

    @property
    def settled(self) -> bool:
        return self._decision is not None

    def ack(self) -> None:
        if self._claim("ack"):
            self._ack()

    def nack(self) -> None:
        if self._claim("nack"):
            self._nack()

    def _claim(self, decision: str) -> bool:
        with self._settle_lock:
            if self._decision is not None:
                logger.debug(
                    "{} ignored for message {}: already settled by {}",
                    decision,
                    self.message_id,
                    self._decision,
                )
                return False
            self._decision = decision
            return True

    def _ack(self) -> None:
        raise NotImplementedError

    def _nack(self) -> None:
        raise NotImplementedError
