"""Parsers turning Cursor storage blobs into conversations."""

from .base import generate_id, parse_timestamp, to_iso, utc_now
from .blobs import BlobKind, classify_blob
from .canonical import ConversationParser, parse_context_files, parse_conversations
from .code_blocks import extract_code_blocks, extract_filename
from .generations import GenerationSynthesizer, synthesize_conversations
from .pairing import (
    NearestTimestampPairing,
    PairingRegistry,
    PairingStrategy,
    PositionalPairing,
)

__all__ = [
    "BlobKind",
    "ConversationParser",
    "GenerationSynthesizer",
    "NearestTimestampPairing",
    "PairingRegistry",
    "PairingStrategy",
    "PositionalPairing",
    "classify_blob",
    "extract_code_blocks",
    "extract_filename",
    "generate_id",
    "parse_context_files",
    "parse_conversations",
    "parse_timestamp",
    "synthesize_conversations",
    "to_iso",
    "utc_now",
]

# Register pairing strategies
PairingRegistry.register(PositionalPairing())
PairingRegistry.register(NearestTimestampPairing())
