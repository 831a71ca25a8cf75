from pydantic import BaseModel
from datetime import datetime
from typing import List, Optional


class FollowUserModel(BaseModel):
    followingId: str


class FollowDetail(BaseModel):
    id: str
    follower_id: str
    following_id: str
    created_at: datetime


class FollowResponseModel(BaseModel):
    message: str
    follow: FollowDetail


class UnfollowResponseModel(BaseModel):
    message: str


# Followers / following lists
class FollowUser(BaseModel):
    id: str
    username: str
    profile_pic_url: Optional[str] = None


class FollowerItem(BaseModel):
    follower_id: str
    users: Optional[FollowUser] = None


class FollowingItem(BaseModel):
    following_id: str
    users: Optional[FollowUser] = None


class FollowersResponseModel(BaseModel):
    count: int
    followers: List[FollowerItem]


class FollowingResponseModel(BaseModel):
    count: int
    following: List[FollowingItem]


class CheckFollowingResponseModel(BaseModel):
    isFollowing: bool
