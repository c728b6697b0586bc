from .metadata import MetadataStore

__all__ = ["MetadataStore"]
