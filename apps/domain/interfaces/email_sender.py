from abc import ABC, abstractmethod
from typing import Dict


class EmailSender(ABC):
    @abstractmethod
    def send(self, template_id: str, recipient: str, variables: Dict) -> None:
        pass
