"""Base reader abstraction"""
import abc
from typing import Callable

from core.state import InputEvent

EventCallback = Callable[[InputEvent], None]


class DeviceReader(abc.ABC):
    @abc.abstractmethod
    def start(self):
        raise NotImplementedError

    @abc.abstractmethod
    def stop(self):
        raise NotImplementedError

    @abc.abstractmethod
    def subscribe(self, callback: EventCallback):
        raise NotImplementedError

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
