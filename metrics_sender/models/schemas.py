"""
Pydantic models for metrics-sender.

Shared data models across the pipeline.
"""

from typing import Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict


# =====================================================
# Performance Data Models
# =====================================================

class PerfMetric(BaseModel):
    """One decoded performance-data measurement."""
    model_config = ConfigDict(frozen=True)

    label: str
    value: float
    unit: Optional[str] = None
    warn: Optional[float] = None
    crit: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None


# =====================================================
# Point Models
# =====================================================

class MeasurementPoint(BaseModel):
    """A single time-series point handed to the sink."""
    model_config = ConfigDict(frozen=True)

    name: str
    tags: Dict[str, str] = {}
    fields: Dict[str, Union[int, float]]
    timestamp: int  # epoch seconds


Batch = List[MeasurementPoint]
