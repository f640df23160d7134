from abc import ABC, abstractmethod
from typing import Dict


class WebhookEmitter(ABC):
    @abstractmethod
    def emit(self, event_type: str, payload: Dict) -> None:
        pass
