from pydantic import BaseModel, Field


class ReviewCreate(BaseModel):
    laundry_id: int
    rating: int = Field(ge=1, le=5)
    comment: str | None = Field(default=None, max_length=2000)


class FavoriteCreate(BaseModel):
    laundry_id: int
