from .article import (
    Article,
    CapturedImage,
    DensityCandidate,
    ExtractionResult,
    ImageDescriptor,
    ImagesResponse,
    RawImage,
    ScreenshotResult,
)

__all__ = [
    'Article',
    'CapturedImage',
    'DensityCandidate',
    'ExtractionResult',
    'ImageDescriptor',
    'ImagesResponse',
    'RawImage',
    'ScreenshotResult',
]
