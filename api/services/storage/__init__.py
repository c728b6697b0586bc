from .object_store import ObjectStore
from .provisioner import StorageProvisioner

__all__ = ["ObjectStore", "StorageProvisioner"]
