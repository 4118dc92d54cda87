from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ...assignments.model import Assignment


@dataclass(frozen=True)
class WorkedHours:
    total: float
    regular: float
    overtime: float

    def __add__(self, other: "WorkedHours") -> "WorkedHours":
        return WorkedHours(
            total=self.total + other.total,
            regular=self.regular + other.regular,
            overtime=self.overtime + other.overtime,
        )


ZERO_HOURS = WorkedHours(total=0.0, regular=0.0, overtime=0.0)


class HoursCalculator(ABC):
    """Calculator interface (Strategy Pattern for worked hours)."""

    @abstractmethod
    def worked_hours(self, assignment: Assignment) -> WorkedHours:
        raise NotImplementedError
