from pydantic import BaseModel
from uuid import UUID


class PhotoResponse(BaseModel):
    id: UUID
    user_id: UUID
    url: str

    model_config = {"from_attributes": True}


class PrimaryPhotoUpdate(BaseModel):
    id: UUID
