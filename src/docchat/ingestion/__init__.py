"""
Ingestion — text extraction, chunking, embedding, and indexing.

This module turns one uploaded file into metadata-tagged vectors in the
vector store, tracking the document's lifecycle status as it goes:

    PENDING → INDEXING → INDEXED | FAILED
"""
