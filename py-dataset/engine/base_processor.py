"""
Processor lifecycle for PDFEngine.

A processor is bound to one engine for the duration of a ``with`` block: it is
registered and initialized once the document is open, and cleaned up, in
reverse registration order, when the engine closes.
"""

from abc import ABC
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional
import logging

from engine.config import ProcessorOptions

if TYPE_CHECKING:
    from engine.pdf_engine import PDFEngine

logger = logging.getLogger(__name__)


class BaseProcessor(ABC):
    """
    Per-document worker attached to an open PDFEngine.

    Subclasses set ``name`` and extend initialize()/cleanup() to build and
    drop their per-document caches.
    """

    name: str = "base"

    def __init__(self, engine: 'PDFEngine', options: Optional[ProcessorOptions] = None):
        self.engine = engine
        self.options = options or ProcessorOptions()
        self._ready = False

    def initialize(self) -> None:
        if self._ready:
            logger.warning(f"Processor '{self.name}' initialized twice, ignoring")
            return

        self._ready = True
        logger.debug(f"Processor '{self.name}' ready for {self.engine!r}")

    def cleanup(self) -> None:
        """Drop per-document state. Safe to call more than once."""
        if self._ready:
            self._ready = False
            logger.debug(f"Processor '{self.name}' released")

    @property
    def is_initialized(self) -> bool:
        return self._ready

    def validate_state(self) -> bool:
        """True while initialized and the owning engine still has the document open."""
        if not self._ready:
            logger.error(f"Processor '{self.name}' used before initialize()")
            return False

        if self.engine is None or not self.engine.is_open:
            logger.error(f"Processor '{self.name}' used after its engine closed")
            return False

        return True

    def __repr__(self) -> str:
        state = "ready" if self._ready else "idle"
        return f"{self.__class__.__name__}({self.name}, {state})"


class ProcessorRegistry:
    """Processors of one engine keyed by name, in registration order."""

    def __init__(self):
        self._processors: Dict[str, BaseProcessor] = {}

    def register(self, processor: BaseProcessor) -> None:
        if processor.name in self._processors:
            logger.warning(f"Replacing processor '{processor.name}'")
            del self._processors[processor.name]

        self._processors[processor.name] = processor
        logger.debug(f"Registered processor '{processor.name}'")

    def get(self, name: str) -> Optional[BaseProcessor]:
        return self._processors.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._processors

    def __iter__(self) -> Iterator[BaseProcessor]:
        return iter(list(self._processors.values()))

    def initialize_all(self) -> None:
        """Initialize in registration order; the first failure propagates."""
        for processor in self:
            processor.initialize()

    def cleanup_all(self) -> None:
        """Clean up in reverse registration order, logging failures."""
        for processor in reversed(list(self)):
            try:
                processor.cleanup()
            except Exception as e:
                # Keep releasing the remaining processors
                logger.warning(f"Error cleaning up processor '{processor.name}': {e}")

    @property
    def processor_names(self) -> List[str]:
        return list(self._processors)
