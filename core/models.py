# core/models.py
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Dict


class GenerationError(Exception):
    """Raised when fallback synthesis cannot find an unused address"""


class AddressStatus(str, Enum):
    PENDING = 'pending'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'


@dataclass(frozen=True)
class AddressRecord:
    address: str
    latency_ms: int
    provider: str
    status: AddressStatus = AddressStatus.PENDING

    def to_dict(self) -> Dict:
        data = asdict(self)
        data['status'] = self.status.value
        return data
