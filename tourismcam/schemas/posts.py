from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from .common import Pagination


PostStatus = Literal["draft", "published", "archived"]
SortOrder = Literal["newest", "oldest", "popular"]


class Location(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    city: str | None = None
    country: str | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)


class ImageMetadata(BaseModel):
    width: int = 0
    height: int = 0
    format: str = ""
    size: int = 0
    aspectRatio: float = 0.0
    isEquirectangular: bool = False
    thumbnailUrl: str = ""
    mediumUrl: str = ""


class PostCreate(BaseModel):
    caption: str = Field(min_length=1, max_length=2200)
    imageUrl: str = Field(min_length=1)
    location: Location | None = None
    tags: list[str] = Field(default_factory=list)
    isPublic: bool = True
    status: PostStatus = "published"
    isPanoramic: bool = True
    imageMetadata: ImageMetadata | None = None


class PostUpdate(BaseModel):
    caption: str | None = Field(default=None, min_length=1, max_length=2200)
    location: Location | None = None
    tags: list[str] | None = None
    isPublic: bool | None = None
    status: PostStatus | None = None


class AuthorPublic(BaseModel):
    id: str
    username: str
    name: str = ""
    avatarUrl: str | None = None
    isVerified: bool = False


class CommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=1000)
    parentCommentId: str | None = None


class CommentUpdate(BaseModel):
    content: str = Field(min_length=1, max_length=1000)


class CommentPublic(BaseModel):
    id: str
    postId: str
    authorId: str
    content: str
    isEdited: bool = False
    parentCommentId: str | None = None
    repliesCount: int = 0
    createdAt: str
    updatedAt: str
    author: AuthorPublic
    username: str
    replies: list["CommentPublic"] | None = None


class PostPublic(BaseModel):
    id: str
    authorId: str
    caption: str
    imageUrl: str
    location: Location | None = None
    tags: list[str] = Field(default_factory=list)
    isPublic: bool = True
    status: PostStatus = "published"
    isPanoramic: bool = True
    likesCount: int = 0
    commentsCount: int = 0
    viewsCount: int = 0
    imageMetadata: ImageMetadata | None = None
    createdAt: str
    updatedAt: str
    author: AuthorPublic | None = None
    isLikedByCurrentUser: bool = False
    isSavedByCurrentUser: bool = False
    recentComments: list[CommentPublic] = Field(default_factory=list)


class PostData(BaseModel):
    post: PostPublic


class PostsPage(BaseModel):
    posts: list[PostPublic]
    pagination: Pagination


class CommentsPage(BaseModel):
    comments: list[CommentPublic]
    pagination: Pagination


class LikeToggle(BaseModel):
    isLiked: bool
    likesCount: int
    postId: str
    userId: str


class LikeStatus(BaseModel):
    isLiked: bool
    postId: str
    userId: str | None = None


class LikePublic(BaseModel):
    id: str
    postId: str
    userId: str
    createdAt: str
    user: AuthorPublic | None = None


class LikesPage(BaseModel):
    likes: list[LikePublic]
    pagination: Pagination


class RecentLike(BaseModel):
    userId: str
    userName: str
    likedAt: str


class LikeStats(BaseModel):
    postId: str
    totalLikes: int
    recentLikes: list[RecentLike]


class SaveToggle(BaseModel):
    isSaved: bool
    postId: str
    userId: str
