"""Admission channel — how descriptors travel from generator to scheduler.

The generator and the scheduler run in different OS processes, so the
channel is a message queue in the System V / POSIX sense: discrete,
whole messages delivered FIFO.  By default it wraps a
``multiprocessing.Queue``; any object with ``put`` and ``get_nowait``
(for example ``queue.Queue`` in tests) works as the transport.

The scheduler side never blocks: ``poll()`` returns whatever is already
waiting, possibly nothing.
"""

from __future__ import annotations

import multiprocessing
import multiprocessing.queues
import queue
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from py_sched.process.pcb import ProcessDescriptor


class ChannelError(RuntimeError):
    """Raise when the admission channel cannot be created or used."""


class _Transport(Protocol):
    def put(self, item: ProcessDescriptor) -> None: ...  # pragma: no cover

    def get_nowait(self) -> ProcessDescriptor: ...  # pragma: no cover


class AdmissionChannel:
    """A one-way, FIFO channel of ``ProcessDescriptor`` messages."""

    def __init__(self, transport: _Transport | None = None) -> None:
        """Create a channel.

        Args:
            transport: The queue to carry messages.  A fresh
                ``multiprocessing.Queue`` is created when omitted.

        Raises:
            ChannelError: If the underlying queue cannot be created.

        """
        if transport is None:
            try:
                transport = multiprocessing.Queue()
            except OSError as e:
                msg = f"Cannot create admission channel: {e}"
                raise ChannelError(msg) from e
        self._transport = transport
        self._closed = False

    @property
    def transport(self) -> _Transport:
        """Return the underlying queue (to hand to a child process)."""
        return self._transport

    def is_closed(self) -> bool:
        """Return True once the channel has been closed."""
        return self._closed

    def send(self, descriptor: ProcessDescriptor) -> None:
        """Send one descriptor.

        Raises:
            ChannelError: If the channel is closed.

        """
        if self._closed:
            msg = f"Cannot send process {descriptor.pid}: channel is closed"
            raise ChannelError(msg)
        self._transport.put(descriptor)

    def poll(self) -> list[ProcessDescriptor]:
        """Return every descriptor available right now, in arrival order."""
        received: list[ProcessDescriptor] = []
        if self._closed:
            return received
        while True:
            try:
                received.append(self._transport.get_nowait())
            except queue.Empty:
                return received

    def close(self) -> None:
        """Stop using the channel and release the queue's resources."""
        if self._closed:
            return
        self._closed = True
        if isinstance(self._transport, multiprocessing.queues.Queue):
            self._transport.close()
