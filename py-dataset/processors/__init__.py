"""
Text Processing Components

Processors that turn PDF content streams into clean document text:

- StreamOrderDevice: PDFMiner device for stream-order text fragment extraction
- LayoutReconstructor: Geometric line and word reconstruction per page
- Text normalizer: Conservative character and whitespace cleanup

These differ from utils/ which contains small stateless helpers.
"""

from processors.stream_order_device import StreamOrderDevice
from processors.layout_reconstructor import (
    LayoutReconstructor,
    build_page,
    build_page_text,
    join_pages,
    reconstruct_page,
)
from processors.text_normalizer import normalize, normalize_text

__version__ = "1.0.0"
__all__ = [
    'StreamOrderDevice',
    'LayoutReconstructor',
    'build_page',
    'build_page_text',
    'join_pages',
    'reconstruct_page',
    'normalize',
    'normalize_text',
]
