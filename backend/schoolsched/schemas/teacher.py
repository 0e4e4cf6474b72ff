from pydantic import BaseModel, EmailStr, Field, field_validator


class TeacherCreate(BaseModel):
    employee_id: str = Field(min_length=1, max_length=50)
    full_name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    designation: str = Field(default="Teacher", min_length=1, max_length=200)
    user_id: str | None = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class TeacherOut(BaseModel):
    id: str
    employee_id: str
    full_name: str
    email: str
    designation: str
    user_id: str | None = None

    model_config = {"from_attributes": True}
