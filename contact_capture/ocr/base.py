"""
Recognition Engine Interface

The collaborator boundary for turning a card image into free text. The
rest of the package only depends on this contract, never on a concrete
OCR binding.
"""

from abc import ABC, abstractmethod
from PIL import Image

from .result import OCRResult


class OCREngine(ABC):
    """
    Base class for text recognition engines.

    Lifecycle: construct, configure(), initialize() once, then any number
    of recognize() calls. recognize() may block; RecognitionWorker runs it
    in a worker thread.
    """

    @abstractmethod
    def recognize(self, image: Image.Image, lang: str) -> OCRResult:
        """
        Read the text on a preprocessed card image.

        Args:
            image: Grayscale/binarized PIL Image
            lang: Language hint, e.g. "spa+eng"

        Raises:
            RecognitionError: If the engine fails
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier, e.g. "tesseract"."""
        pass

    def initialize(self) -> None:
        """Slow one-time setup (binary checks, model loading). No-op by default."""
        pass

    def configure(self, **kwargs) -> None:
        """Apply engine-specific options. Unknown options are ignored."""
        pass
