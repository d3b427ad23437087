"""guestlens.pipeline -- the guest photo submission pipeline.

* :mod:`.items` -- :class:`UploadableItem` and the :class:`UploadSession`
  working set.
* :mod:`.upload` -- chunked, retried uploads to object storage.
* :mod:`.categories` -- cached categories and the active selection.
* :mod:`.registrar` -- registering stored URLs with the backend.
* :mod:`.submission` -- the end-to-end orchestrator.
* :mod:`.carousel` -- admin-managed homepage slides.
"""

from __future__ import annotations

from .carousel import CarouselManager
from .categories import CategoryResolver
from .items import UploadableItem, UploadSession
from .registrar import MetadataRegistrar
from .submission import SubmissionPipeline, SubmissionResult
from .upload import UploadCoordinator

__all__ = [
    "CarouselManager",
    "CategoryResolver",
    "MetadataRegistrar",
    "SubmissionPipeline",
    "SubmissionResult",
    "UploadCoordinator",
    "UploadSession",
    "UploadableItem",
]
