"""Abstract base class for pipeline stages and model-backed capabilities."""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any

from config import MatchingConfig

logger = logging.getLogger(__name__)


class BaseModelService(ABC):
    """Base class for every stage of the match pipeline.

    Subclasses must implement:
        - model_name: identifier used in the stage registry
        - load(): load model weights or reference data; may be a no-op
        - predict(**kwargs): run the stage and return its typed schema

    Each instance is bound to one immutable MatchingConfig. Stages are
    shared by concurrent CV evaluations, so loading is guarded by a lock.
    """

    model_name: str = ""

    def __init__(self, config: MatchingConfig) -> None:
        self.config = config
        self._loaded = False
        self._load_lock = threading.Lock()

    @abstractmethod
    def load(self) -> None:
        """Load artifacts. Called once by ensure_loaded()."""

    @abstractmethod
    def predict(self, **kwargs: Any) -> Any:
        """Run the stage."""

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def ensure_loaded(self) -> None:
        if self._loaded:
            return
        with self._load_lock:
            if not self._loaded:
                logger.info("Loading stage: %s", self.model_name)
                self.load()
                self._loaded = True
                logger.info("Stage loaded: %s", self.model_name)
