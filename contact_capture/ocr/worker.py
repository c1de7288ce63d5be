"""
Recognition Worker

Lazily initialized, shared OCR engine. Concurrent requests queue behind
one initialization; blocking engine calls run in a worker thread so the
event loop keeps serving other channels.
"""

import asyncio
import logging
from typing import Optional

from PIL import Image

from ..errors import RecognitionError
from .base import OCREngine
from .factory import create_engine
from .result import OCRResult

logger = logging.getLogger(__name__)

DEFAULT_LANG = "spa+eng"
DEFAULT_TIMEOUT_SEC = 60.0


class RecognitionWorker:
    """
    Async front-end for an OCREngine.

    Example:
        worker = RecognitionWorker("tesseract", lang="spa+eng")
        result = await worker.recognize(image)
        print(result.text)
    """

    def __init__(
        self,
        engine_type: str = "tesseract",
        lang: str = DEFAULT_LANG,
        timeout: Optional[float] = DEFAULT_TIMEOUT_SEC,
        **engine_config,
    ):
        """
        Args:
            engine_type: Registered engine type (see available_engines())
            lang: Language hint passed to every recognition
            timeout: Seconds before a recognition is abandoned (None = no limit)
            **engine_config: Forwarded to create_engine()
        """
        self.engine_type = engine_type
        self.lang = lang
        self.timeout = timeout
        self._engine_config = engine_config
        self._engine: Optional[OCREngine] = None
        self._init_lock = asyncio.Lock()

    @property
    def is_ready(self) -> bool:
        return self._engine is not None

    async def get_engine(self) -> OCREngine:
        """Create and initialize the engine on first use."""
        if self._engine is not None:
            return self._engine

        async with self._init_lock:
            if self._engine is None:
                logger.info(f"Initializing OCR engine: {self.engine_type}")
                try:
                    engine = create_engine(self.engine_type, **self._engine_config)
                    await asyncio.to_thread(engine.initialize)
                except RecognitionError:
                    raise
                except Exception as e:
                    raise RecognitionError(f"OCR engine initialization failed: {e}") from e
                self._engine = engine
        return self._engine

    async def recognize(self, image: Image.Image) -> OCRResult:
        """
        Recognize text on an image.

        Raises:
            RecognitionError: On engine failure or timeout
        """
        engine = await self.get_engine()
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(engine.recognize, image, self.lang),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise RecognitionError(f"OCR timed out after {self.timeout}s") from e
        except RecognitionError:
            raise
        except Exception as e:
            raise RecognitionError(f"OCR failed: {e}") from e
