from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BucketConfig(BaseModel):
    """Configuration applied to the papers bucket on create and on update."""
    public: bool = True
    file_size_limit: int


class ProvisionResult(BaseModel):
    """Outcome of StorageProvisioner.ensure_bucket."""
    bucket_name: str
    created: bool
    message: str
    policy_attached: bool | None = None


class StorageInitResponse(BaseModel):
    """Response for POST /storage/init."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    message: str
    bucket_name: str
