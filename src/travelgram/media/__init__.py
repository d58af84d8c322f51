"""Media pipeline.

Provides:
- Binary store (MinIO/S3) for images and audio notes
- Local staging of inbound uploads
- Upload orchestration and owner-checked deletes
- Feed composition with audio correlation
- Vision relay for AI captions
"""

from .storage import BinaryStore, ObjectStream
from .staging import StagingArea, StagedFile
from .uploads import UploadOrchestrator
from .feed import FeedComposer
from .vision import VisionRelay

__all__ = [
    "BinaryStore",
    "ObjectStream",
    "StagingArea",
    "StagedFile",
    "UploadOrchestrator",
    "FeedComposer",
    "VisionRelay",
]
