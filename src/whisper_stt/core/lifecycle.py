"""Model lifecycle: load once, serve, drain, release."""

import enum
import threading
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from ..config.settings import ModelConfig
from ..engine.base import ModelLoader, RecognitionModel
from ..exceptions import ModelLoadError, ModelNotReadyError
from ..utils.logging import get_logger

logger = get_logger(__name__)


class LifecycleState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    DRAINING = "draining"
    STOPPED = "stopped"


class ServiceLifecycle:
    """Owns the shared model handle for the life of the process.

    The handle is created by ``load()`` before the listener opens and is
    released by ``close()`` only after the listener has stopped and no
    borrowed call is still running.
    """

    def __init__(
        self,
        config: ModelConfig,
        loader: ModelLoader,
        grace_period: float = 30.0,
    ):
        """Initialize lifecycle manager.

        Args:
            config: Model configuration (name and derived path)
            loader: Engine function that loads a model binary
            grace_period: Seconds in-flight calls get once draining starts
        """
        self.config = config
        self._loader = loader
        self._model: Optional[RecognitionModel] = None
        self._state = LifecycleState.UNINITIALIZED
        self._in_flight = 0
        self._load_time: Optional[float] = None
        self.grace_period = grace_period
        self._drain_deadline: Optional[float] = None
        self._cond = threading.Condition()

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def model_name(self) -> str:
        return self.config.name

    @property
    def is_ready(self) -> bool:
        return self._state is LifecycleState.READY and self._model is not None

    @property
    def in_flight(self) -> int:
        with self._cond:
            return self._in_flight

    @property
    def load_time(self) -> Optional[float]:
        return self._load_time

    @property
    def model(self) -> Optional[RecognitionModel]:
        return self._model

    def load(self) -> RecognitionModel:
        """Load the model. Failure is fatal for the process.

        Raises:
            ModelLoadError: Model file missing or the engine failed to load it
        """
        with self._cond:
            if self._state is not LifecycleState.UNINITIALIZED:
                raise ModelLoadError(str(self.config.path), f"cannot load in state {self._state.value}")
            self._state = LifecycleState.LOADING

        path = self.config.path
        start_time = time.time()
        logger.info("Loading whisper model", extra={"model": self.model_name, "path": str(path)})

        try:
            model = self._load_from(path)
        except ModelLoadError:
            with self._cond:
                self._state = LifecycleState.STOPPED
            logger.error("Failed to load model", extra={"model": self.model_name, "path": str(path)})
            raise

        self._load_time = time.time() - start_time
        with self._cond:
            self._model = model
            self._state = LifecycleState.READY

        logger.info(
            "Model loaded successfully",
            extra={
                "model": self.model_name,
                "load_time": f"{self._load_time:.2f}s",
                "languages": sorted(model.supported_languages()),
            },
        )
        return model

    def _load_from(self, path) -> RecognitionModel:
        if not path.exists():
            raise ModelLoadError(str(path), "model file not found")
        try:
            return self._loader(path)
        except ModelLoadError:
            raise
        except Exception as e:
            raise ModelLoadError(str(path), str(e)) from e

    def supported_languages(self) -> frozenset:
        model = self._model
        if model is None:
            return frozenset()
        return model.supported_languages()

    @contextmanager
    def borrow(self) -> Iterator[RecognitionModel]:
        """Hold the model for one orchestration call.

        Raises:
            ModelNotReadyError: The model is not loaded or already released
        """
        with self._cond:
            if self._model is None or self._state not in (
                LifecycleState.READY,
                LifecycleState.DRAINING,
            ):
                raise ModelNotReadyError(self._state.value)
            self._in_flight += 1
            model = self._model
        try:
            yield model
        finally:
            with self._cond:
                self._in_flight -= 1
                self._cond.notify_all()

    def begin_drain(self) -> None:
        """Stop signal received; in-flight calls may still finish."""
        with self._cond:
            if self._state is LifecycleState.READY:
                self._state = LifecycleState.DRAINING
                self._drain_deadline = time.monotonic() + self.grace_period
                logger.info("Draining in-flight requests", extra={"in_flight": self._in_flight})

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Wait until no call holds the model.

        Args:
            timeout: Seconds to wait; defaults to what is left of the
                grace period since draining began

        Returns:
            True if idle, False if the timeout passed first
        """
        if timeout is None:
            if self._drain_deadline is None:
                timeout = self.grace_period
            else:
                timeout = max(0.0, self._drain_deadline - time.monotonic())
        with self._cond:
            return self._cond.wait_for(lambda: self._in_flight == 0, timeout=timeout)

    def close(self) -> None:
        """Release the model once nothing is using it.

        Must only be called after the HTTP listener has stopped.
        """
        with self._cond:
            if self._state is LifecycleState.STOPPED and self._model is None:
                return
            self._state = LifecycleState.STOPPED
            model = self._model
            if self._in_flight:
                # Abandoned calls keep their reference; process exit frees it
                logger.warning(
                    "Requests still running after grace period, not releasing model",
                    extra={"in_flight": self._in_flight},
                )
                return
            self._model = None

        if model is not None:
            model.close()
            logger.info("Model resources released", extra={"model": self.model_name})
