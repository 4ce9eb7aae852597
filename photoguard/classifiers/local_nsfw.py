"""
Local NSFW Classifier - offline image classification with ONNX Runtime.

Runs a five-class NSFW image model (Drawing, Hentai, Neutral, Porn, Sexy)
on the CPU. The model is loaded once during an explicit startup phase and
the resulting InferenceSession is shared read-only by every call.

Readiness policy: calls issued while the model is still loading block
until loading finishes (bounded by a timeout). Calls after a failed load,
or after the timeout expires, raise ClassifierNotReadyError.

Preprocessing is deterministic (fixed RGB conversion, bilinear resize,
float32 scaling), so identical bytes always produce identical predictions.
"""

import asyncio
import io
import logging
import time
from typing import Any, Callable, Sequence

import numpy as np
import onnxruntime as ort
from PIL import Image, UnidentifiedImageError

from photoguard.errors import ClassifierError, ClassifierNotReadyError
from photoguard.moderation.models import ModerationProvider, NsfwClass, NsfwPrediction

logger = logging.getLogger(__name__)

_PROVIDER = ModerationProvider.LOCAL_NSFW.value

# Output order of the published five-class NSFW model
DEFAULT_CLASS_ORDER: tuple[NsfwClass, ...] = (
    NsfwClass.DRAWING,
    NsfwClass.HENTAI,
    NsfwClass.NEUTRAL,
    NsfwClass.PORN,
    NsfwClass.SEXY,
)


def _create_session(model_path: str) -> ort.InferenceSession:
    """Load an ONNX model for CPU inference."""
    options = ort.SessionOptions()
    options.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
    return ort.InferenceSession(
        model_path,
        sess_options=options,
        providers=["CPUExecutionProvider"],
    )


def preprocess(data: bytes, size: int, channels_first: bool = False) -> np.ndarray:
    """
    Decode an encoded image into a model input tensor.

    Args:
        data: Encoded image bytes (JPEG, PNG, WebP, ...)
        size: Square input resolution
        channels_first: Produce NCHW instead of NHWC

    Returns:
        float32 array of shape (1, size, size, 3) or (1, 3, size, size),
        scaled to 0.0-1.0

    Raises:
        ClassifierError: If the bytes are not a decodable image
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            rgb = img.convert("RGB").resize((size, size), Image.Resampling.BILINEAR)
    except (UnidentifiedImageError, OSError) as e:
        raise ClassifierError(_PROVIDER, f"Cannot decode image: {e}") from e

    tensor = np.asarray(rgb, dtype=np.float32) / 255.0
    if channels_first:
        tensor = np.transpose(tensor, (2, 0, 1))
    return np.expand_dims(tensor, axis=0)


def _normalize(scores: np.ndarray) -> np.ndarray:
    """Apply softmax unless the model already emits probabilities."""
    if np.all(scores >= 0.0) and abs(float(scores.sum()) - 1.0) < 1e-3:
        return scores
    shifted = np.exp(scores - scores.max())
    return shifted / shifted.sum()


class LocalNsfwClassifier:
    """
    Offline NSFW classifier backed by ONNX Runtime.

    Usage:
        classifier = LocalNsfwClassifier("models/nsfw.onnx")
        await classifier.initialize()
        predictions = await classifier.classify(image_bytes)

    Attributes:
        is_ready: Whether the model is loaded and usable
        load_failed: Whether initialization was attempted and failed
    """

    def __init__(
        self,
        model_path: str | None,
        input_size: int = 224,
        ready_timeout: float = 30.0,
        class_order: Sequence[NsfwClass] = DEFAULT_CLASS_ORDER,
        session_factory: Callable[[str], Any] = _create_session,
    ):
        """
        Create the classifier without loading the model.

        Call initialize() separately so loading can run as an async
        startup task.
        """
        self._model_path = model_path
        self._input_size = input_size
        self._ready_timeout = ready_timeout
        self._class_order = tuple(class_order)
        self._session_factory = session_factory

        self._session: Any = None
        self._input_name: str | None = None
        self._channels_first = False
        self._loaded = asyncio.Event()
        self._load_error: str | None = None
        self._init_latency_ms: float = 0.0

    async def initialize(self) -> None:
        """
        Load the model.

        Runs the (blocking) session creation in a worker thread. Waiters
        blocked in classify() are released whether loading succeeds or
        fails.

        Raises:
            RuntimeError: If the model cannot be loaded
        """
        if self._loaded.is_set():
            logger.debug("NSFW model already initialized, skipping")
            return

        logger.info("Loading local NSFW model...")
        start_time = time.perf_counter()

        try:
            if not self._model_path:
                raise FileNotFoundError("NSFW_MODEL_PATH is not configured")

            session = await asyncio.to_thread(self._session_factory, self._model_path)

            model_input = session.get_inputs()[0]
            shape = list(model_input.shape)
            self._channels_first = len(shape) == 4 and shape[1] == 3
            self._input_name = model_input.name
            self._session = session

            self._init_latency_ms = (time.perf_counter() - start_time) * 1000
            logger.info(
                f"Local NSFW model loaded in {self._init_latency_ms:.2f}ms "
                f"(input={self._input_name}, shape={shape})"
            )

        except Exception as e:
            self._load_error = str(e)
            logger.error(f"Failed to load local NSFW model: {e}")
            raise RuntimeError(f"NSFW model initialization failed: {e}") from e

        finally:
            self._loaded.set()

    async def wait_ready(self, timeout: float | None = None) -> None:
        """
        Block until the model is usable.

        Raises:
            ClassifierNotReadyError: If loading failed or did not finish in time
        """
        if not self._loaded.is_set():
            wait_for = self._ready_timeout if timeout is None else timeout
            try:
                await asyncio.wait_for(self._loaded.wait(), timeout=wait_for)
            except asyncio.TimeoutError as e:
                raise ClassifierNotReadyError(
                    _PROVIDER, f"NSFW model still loading after {wait_for:.1f}s"
                ) from e

        if self._session is None:
            raise ClassifierNotReadyError(
                _PROVIDER, f"NSFW model failed to load: {self._load_error}"
            )

    def is_available(self) -> bool:
        """Usable now or still loading; False only once loading has failed."""
        return self._load_error is None

    async def classify(self, data: bytes) -> list[NsfwPrediction]:
        """
        Predict class probabilities for an encoded image.

        Args:
            data: Encoded image bytes

        Returns:
            One NsfwPrediction per class, most probable first

        Raises:
            ClassifierNotReadyError: If the model is not loaded
            ClassifierError: If decoding or inference fails
        """
        await self.wait_ready()

        tensor = await asyncio.to_thread(
            preprocess, data, self._input_size, self._channels_first
        )

        try:
            outputs = await asyncio.to_thread(
                self._session.run, None, {self._input_name: tensor}
            )
        except Exception as e:
            raise ClassifierError(_PROVIDER, f"NSFW inference failed: {e}") from e

        scores = np.asarray(outputs[0], dtype=np.float64).reshape(-1)
        if scores.shape[0] != len(self._class_order):
            raise ClassifierError(
                _PROVIDER,
                f"Model returned {scores.shape[0]} scores, "
                f"expected {len(self._class_order)}",
            )

        probabilities = _normalize(scores)
        predictions = [
            NsfwPrediction(class_name=cls, probability=float(p))
            for cls, p in zip(self._class_order, probabilities)
        ]
        predictions.sort(key=lambda p: p.probability, reverse=True)
        return predictions

    @property
    def is_ready(self) -> bool:
        return self._session is not None

    @property
    def is_loading(self) -> bool:
        return not self._loaded.is_set()

    @property
    def load_failed(self) -> bool:
        return self._load_error is not None

    @property
    def load_error(self) -> str | None:
        return self._load_error

    @property
    def initialization_latency_ms(self) -> float:
        """Return the time taken to load the model."""
        return self._init_latency_ms
