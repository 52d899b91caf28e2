"""Generic response envelopes."""

from datetime import datetime
from typing import Dict

from ._strict_base import StrictModel


class HealthCheckResponse(StrictModel):
    status: str
    service: str
    version: str
    timestamp: datetime
    checks: Dict[str, bool]
