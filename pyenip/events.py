# -*- coding: utf-8 -*-
#
# Copyright (c) 2021 Ian Ottoway <ian@ottoway.dev>
# Copyright (c) 2014 Agostino Ruscito <ruscito@gmail.com>
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.
#

"""
Observer registration shared by the connection, driver, discovery and simulator.
"""

import logging
import threading
from typing import Callable, Dict, List

__all__ = ["EventEmitter", "Subscription"]

Callback = Callable[..., None]


class Subscription:
    """
    Token returned by ``EventEmitter.on``, call ``cancel()`` to stop receiving the event.
    """

    def __init__(self, emitter: "EventEmitter", event: str, callback: Callback):
        self.event = event
        self.callback = callback
        self._emitter = emitter
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self):
        if self._active:
            self._active = False
            self._emitter.off(self.event, self.callback)

    def __repr__(self):
        return f"{self.__class__.__name__}(event={self.event!r}, active={self._active})"


class EventEmitter:
    __log = logging.getLogger(f"{__module__}.{__qualname__}")

    #: names of the events a subclass emits, ``on`` rejects anything else
    events = ()

    def __init__(self):
        self._observers: Dict[str, List[Callback]] = {}
        self._observers_lock = threading.Lock()

    def on(self, event: str, callback: Callback) -> Subscription:
        """
        Register ``callback`` for ``event``, returns a ``Subscription`` to cancel it
        """
        if event not in self.events:
            raise ValueError(f"Unknown event {event!r}, expected one of: {', '.join(self.events)}")
        with self._observers_lock:
            self._observers.setdefault(event, []).append(callback)
        return Subscription(self, event, callback)

    def off(self, event: str, callback: Callback):
        with self._observers_lock:
            callbacks = self._observers.get(event, [])
            if callback in callbacks:
                callbacks.remove(callback)

    def emit(self, event: str, *args):
        with self._observers_lock:
            callbacks = list(self._observers.get(event, []))

        for callback in callbacks:
            try:
                callback(*args)
            except Exception:
                # an observer must not break the thread emitting the event
                self.__log.exception(f"Observer for {event!r} failed")
