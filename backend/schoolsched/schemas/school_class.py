from pydantic import BaseModel, Field


class SchoolClassCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    grade: int | None = Field(default=None, ge=0, le=20)
    section: str | None = Field(default=None, max_length=20)
    academic_year: str = Field(min_length=4, max_length=20)


class SchoolClassOut(SchoolClassCreate):
    id: str

    model_config = {"from_attributes": True}
