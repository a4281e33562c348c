from abc import ABC, abstractmethod


class BaseEngine(ABC):
    """Abstract base class for the inference stages of a style-transfer job."""

    @abstractmethod
    def compute(self, *args, **kwargs):
        """The main computation method for the engine."""
        pass
