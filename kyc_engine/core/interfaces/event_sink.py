"""
Contract: Event Sink

Recebe eventos de verificação. Entrega (WebSocket, e-mail, notificações)
é responsabilidade da implementação.
"""

from abc import ABC, abstractmethod

from kyc_engine.core.entities.events import VerificationEvent


class IEventSink(ABC):
    """Port: Event Sink"""

    @abstractmethod
    def publish(self, event: VerificationEvent) -> None:
        """
        Deliver one event.

        Args:
            event: The transition or aggregate change that just committed.
        """
        ...
