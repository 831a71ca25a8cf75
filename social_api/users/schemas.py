from pydantic import BaseModel
from typing import Optional


class UserProfile(BaseModel):
    id: str
    username: str
    profile_pic_url: Optional[str] = None


class UpdateUserResponseModel(BaseModel):
    message: str
    user: UserProfile
