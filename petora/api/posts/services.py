# petora/api/posts/services.py
import logging
import uuid
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from petora.api.posts.schemas import PostCreateSchema, CommentCreateSchema
from petora.core.context import Requester
from petora.core.errors import NotFoundError, ForbiddenError, UpstreamError
from petora.models.post import Post, Comment
from petora.services.firestore_service import FirestoreService
from petora.services.storage_service import StorageService
from petora.utils.datetime_utils import utc_now

POSTS = 'posts'
POST_FOLDER = 'posts'


class PostService:
    """
    Community feed. Likes are a set of user ids on the post; comments are an
    append-only array on the post.
    """

    def __init__(self, db: FirestoreService, storage: StorageService):
        self.db = db
        self.storage = storage

    @staticmethod
    def _with_viewer(post: Dict[str, Any], viewer_id: Optional[str]) -> Dict[str, Any]:
        post['is_liked'] = bool(viewer_id) and viewer_id in (post.get('likes') or [])
        return post

    def create_post(self, author: Requester, payload: Dict[str, Any], image=None) -> Dict[str, Any]:
        validated = PostCreateSchema().load(payload)
        image_url = validated.get('image_url')
        uploaded = image is not None and bool(image.filename)
        if uploaded:
            image_url = self.storage.upload(image.stream, image.filename, image.mimetype, POST_FOLDER,
                                           owner_id=author.user_id)

        post = Post(
            post_id=str(uuid.uuid4()),
            author_id=author.user_id,
            author_name=author.display_name,
            author_avatar=author.avatar_url,
            content=validated['content'],
            image_url=image_url,
        )
        document = asdict(post)
        document.pop('created_at')
        try:
            self.db.create(POSTS, post.post_id, document)
        except UpstreamError:
            if uploaded:
                self.storage.delete_owned(image_url, author.user_id)
            raise
        logging.info(f"Post created: {post.post_id} by {author.user_id}")
        return self.get_post(post.post_id, author.user_id)

    def get_post(self, post_id: str, viewer_id: Optional[str] = None) -> Dict[str, Any]:
        data = self.db.get(POSTS, post_id)
        if not data:
            raise NotFoundError("Post not found.")
        return self._with_viewer(data, viewer_id)

    def list_posts(self, viewer_id: Optional[str] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Newest first."""
        posts = self.db.query(POSTS, order_by='created_at', descending=True, limit=limit)
        return [self._with_viewer(p, viewer_id) for p in posts]

    def delete_post(self, post_id: str, requester_id: str) -> None:
        post = self.get_post(post_id)
        if post.get('author_id') != requester_id:
            logging.warning(f"Post delete denied (post: {post_id}, requester: {requester_id})")
            raise ForbiddenError("Only the author can delete this post.")
        self.db.delete(POSTS, post_id)
        # a client-supplied image_url is only removed when it sits under the author's prefix
        self.storage.delete_owned(post.get('image_url'), post.get('author_id'))
        logging.info(f"Post {post_id} deleted")

    def toggle_like(self, post_id: str, user_id: str) -> Dict[str, Any]:
        """
        Adds or removes the user's like atomically.
        :return: ``liked`` after the toggle and the resulting ``like_count``
        """
        liked = self.db.toggle_in_set(POSTS, post_id, 'likes', user_id)
        post = self.get_post(post_id)
        return {"liked": liked, "like_count": len(post.get('likes') or [])}

    def add_comment(self, post_id: str, author: Requester, payload: Dict[str, Any]) -> Dict[str, Any]:
        validated = CommentCreateSchema().load(payload)
        self.get_post(post_id)

        comment = Comment(
            comment_id=str(uuid.uuid4()),
            author_id=author.user_id,
            author_name=author.display_name,
            avatar_url=author.avatar_url,
            text=validated['text'],
            # array elements cannot hold server timestamps
            created_at=utc_now(),
        )
        self.db.append_to_array(POSTS, post_id, 'comments', asdict(comment))
        return asdict(comment)
