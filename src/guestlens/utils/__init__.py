from .chunk import chunk_items
from .filenames import replace_extension, sanitize_filename
from .hashing import item_fingerprint, md5_hash
from .redact import redact

__all__ = [
    "chunk_items",
    "item_fingerprint",
    "md5_hash",
    "redact",
    "replace_extension",
    "sanitize_filename",
]
