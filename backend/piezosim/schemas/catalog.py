from __future__ import annotations

from enum import Enum
from pydantic import BaseModel, Field


class Polarity(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    AC = "ac"


class StageRole(str, Enum):
    GENERATOR = "generator"
    RECTIFIER = "rectifier"
    STORAGE = "storage"
    REGULATOR = "regulator"
    LOAD = "load"


class ConnectionPointSpec(BaseModel):
    id: str
    x: float  # offset from the component's top-left corner
    y: float
    polarity: Polarity

    model_config = {"frozen": True}


class ComponentSpec(BaseModel):
    kind: str
    role: StageRole | None = None  # None: drawn but not modelled
    width: float
    height: float
    label: str = ""
    symbol: str = ""
    color: str = "#6B7280"
    parameters: dict[str, float] = Field(default_factory=dict)
    connection_points: list[ConnectionPointSpec] = Field(default_factory=list)

    model_config = {"frozen": True}

    def point(self, point_id: str) -> ConnectionPointSpec | None:
        for point in self.connection_points:
            if point.id == point_id:
                return point
        return None
