"""
Document engine: opens one court decision PDF at a time and runs the
text processor over its pages.
"""

__version__ = "1.0.0"

from engine.pdf_engine import PDFEngine
from engine.config import (
    AppConfig,
    DatasetConfig,
    EngineConfig,
    PageRange,
    ProcessorOptions,
    TextProcessorOptions,
    get_config,
)
from engine.base_processor import BaseProcessor, ProcessorRegistry
from engine.text_processor import TextProcessor

__all__ = [
    'PDFEngine',
    'AppConfig',
    'DatasetConfig',
    'EngineConfig',
    'PageRange',
    'ProcessorOptions',
    'TextProcessorOptions',
    'get_config',
    'BaseProcessor',
    'ProcessorRegistry',
    'TextProcessor',
]
