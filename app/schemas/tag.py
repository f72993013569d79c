from pydantic import BaseModel
from uuid import UUID


class TagCreate(BaseModel):
    tag: str


class TagResponse(BaseModel):
    id: UUID
    user_id: UUID
    value: str

    model_config = {"from_attributes": True}
