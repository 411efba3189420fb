"""docchat — retrieval-augmented chat over user-uploaded documents."""

__version__ = "0.1.0"
