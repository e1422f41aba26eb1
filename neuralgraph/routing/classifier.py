"""Abstract base for task classifiers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel


class Classification(BaseModel):
    primary: str
    confidence: float = 0.7


class TaskClassifier(ABC):
    @abstractmethod
    async def classify(self, text: str) -> Classification:
        """Guess the task type of a free-text description."""
        ...
