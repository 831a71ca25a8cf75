from pydantic import BaseModel
from datetime import datetime
from typing import List, Optional


class PostData(BaseModel):
    id: str
    user_id: str
    description: str
    image_url: Optional[str] = None
    tags: Optional[List[str]] = None
    visibility: Optional[str] = None
    likes: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None
    username: Optional[str] = None


# Update post
class PostUpdateModel(BaseModel):
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    visibility: Optional[str] = None


# Delete post
class DeletePostResponseModel(BaseModel):
    message: str
    data: List[PostData]


# Likes
class LikePostResponseModel(BaseModel):
    message: str
    post: PostData


class ToggleLikeResponseModel(BaseModel):
    liked: bool
    likes: int
