from pydantic import BaseModel, Field


class RoomCreate(BaseModel):
    room_no: str = Field(min_length=1, max_length=50)
    name: str | None = Field(default=None, max_length=100)
    building: str | None = Field(default=None, max_length=200)
    floor: int | None = Field(default=None, ge=-5, le=200)
    capacity: int = Field(default=30, ge=1, le=1000)


class RoomOut(RoomCreate):
    id: str

    model_config = {"from_attributes": True}
