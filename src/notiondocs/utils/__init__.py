from .chunk import chunk_children
from .redact import redact
from .slug import slugify
from .text_split import split_string

__all__ = [
    "chunk_children",
    "redact",
    "slugify",
    "split_string",
]
