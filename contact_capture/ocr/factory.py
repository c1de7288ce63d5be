"""
Recognition Engine Registry

Maps engine names to OCREngine classes. Built-in engines are referenced by
"module.Class" path and imported on first use so that importing the
package does not require every engine's binding to be installed.
"""

import importlib
from typing import Dict, List, Type, Union

from .base import OCREngine

EngineEntry = Union[str, Type[OCREngine]]

_ENGINE_REGISTRY: Dict[str, EngineEntry] = {
    "tesseract": "tesseract_engine.TesseractOCREngine",
}

# Resolved classes by engine name
_ENGINE_CACHE: Dict[str, Type[OCREngine]] = {}


def _resolve(engine_type: str) -> Type[OCREngine]:
    cached = _ENGINE_CACHE.get(engine_type)
    if cached is not None:
        return cached

    entry = _ENGINE_REGISTRY[engine_type]
    if isinstance(entry, str):
        module_path, _, class_name = entry.rpartition(".")
        module = importlib.import_module(f".{module_path}", package=__package__)
        entry = getattr(module, class_name)

    _ENGINE_CACHE[engine_type] = entry
    return entry


def create_engine(engine_type: str = "tesseract", **config) -> OCREngine:
    """
    Instantiate a registered engine and apply its configuration.

    The engine is not initialized here; RecognitionWorker calls
    initialize() once, off the event loop.

    Args:
        engine_type: Registered name ("tesseract" is built in)
        **config: Passed to engine.configure(), e.g. tesseract_cmd, psm

    Raises:
        ValueError: If no engine is registered under engine_type
    """
    if engine_type not in _ENGINE_REGISTRY:
        known = ", ".join(sorted(_ENGINE_REGISTRY))
        raise ValueError(f"Unknown OCR engine '{engine_type}' (registered: {known})")

    engine = _resolve(engine_type)()
    if config:
        engine.configure(**config)
    return engine


def register_engine(name: str, engine_class: type) -> None:
    """
    Make an OCREngine subclass available to create_engine().

    Re-registering a name replaces the previous class.

    Example:
        class CloudVisionEngine(OCREngine):
            ...

        register_engine("cloud", CloudVisionEngine)
        worker = RecognitionWorker("cloud")
    """
    if not isinstance(engine_class, type) or not issubclass(engine_class, OCREngine):
        raise TypeError(f"{engine_class!r} is not an OCREngine subclass")
    _ENGINE_REGISTRY[name] = engine_class
    _ENGINE_CACHE.pop(name, None)


def available_engines() -> List[str]:
    """Names accepted by create_engine()."""
    return list(_ENGINE_REGISTRY)
