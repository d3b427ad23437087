"""Image handling: format detection, normalisation and transcoding."""

from __future__ import annotations

from .detect import sniff_format
from .normalize import normalize, normalize_batch
from .state import UploadStateMachine
from .transcode import decode_data_uri, fit_within, transcode, webp_supported
from .validate import check_size

__all__ = [
    "UploadStateMachine",
    "check_size",
    "decode_data_uri",
    "fit_within",
    "normalize",
    "normalize_batch",
    "sniff_format",
    "transcode",
    "webp_supported",
]
