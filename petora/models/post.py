# petora/models/post.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any


@dataclass
class Comment:
    """Element of a post's ``comments`` array. Insertion-ordered, never edited."""
    comment_id: str
    author_id: str
    author_name: str
    avatar_url: str
    text: str
    created_at: datetime


@dataclass
class Post:
    """
    Firestore 'posts' collection document.
    ``likes`` holds each liking user id once.
    """
    post_id: str
    author_id: str
    author_name: str
    author_avatar: str
    content: str
    image_url: Optional[str] = None
    likes: List[str] = field(default_factory=list)
    comments: List[Dict[str, Any]] = field(default_factory=list)
    created_at: Optional[datetime] = None
