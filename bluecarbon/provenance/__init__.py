"""Provenance - content store client and resource content references."""

from bluecarbon.provenance.content_store import ContentStore, ContentStoreError, gateway_url
from bluecarbon.provenance.linker import STANDARD_LABELS, ProvenanceLinker, wrap_payload

__all__ = [
    "ContentStore",
    "ContentStoreError",
    "gateway_url",
    "ProvenanceLinker",
    "STANDARD_LABELS",
    "wrap_payload",
]
