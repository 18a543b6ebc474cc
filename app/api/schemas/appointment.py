from pydantic import BaseModel


class ValidationErrorDetail(BaseModel):
    message: str
    errors: dict[str, list[str]]  # field -> messages


class ValidationErrorResponse(BaseModel):
    detail: ValidationErrorDetail


class NotFoundResponse(BaseModel):
    detail: str
