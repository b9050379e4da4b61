"""Email channel port: the interface every email adapter implements."""

from abc import ABC, abstractmethod


class EmailPort(ABC):
    @abstractmethod
    def send(self, to: str, subject: str, body: str) -> dict:
        """Hand one message to the mail transport.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...
