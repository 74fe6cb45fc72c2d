"""
Response shaping: turn SDK views into compact, JSON-ready dicts.

Only plain str/int/None/list/dict values come out of here so the dispatcher
can serialise results without knowing about atproto models.
"""

from typing import Any, Dict, List, Optional

from domain import PostResult, post_url


def _record_text(post: Any) -> Optional[str]:
    record = getattr(post, "record", None)
    if isinstance(record, dict):
        return record.get("text")
    return getattr(record, "text", None)


def author_summary(author: Any) -> Dict[str, Any]:
    return {
        "handle": author.handle,
        "displayName": getattr(author, "display_name", None),
    }


def post_summary(post: Any, *, include_author: bool = True) -> Dict[str, Any]:
    """Author, text, engagement counts and timestamp for one post view."""
    summary: Dict[str, Any] = {
        "uri": post.uri,
        "cid": post.cid,
        "url": post_url(post.author.handle, post.uri),
    }
    if include_author:
        summary["author"] = author_summary(post.author)
    summary.update(
        {
            "text": _record_text(post),
            "replyCount": getattr(post, "reply_count", None) or 0,
            "repostCount": getattr(post, "repost_count", None) or 0,
            "likeCount": getattr(post, "like_count", None) or 0,
            "indexedAt": getattr(post, "indexed_at", None),
        }
    )
    return summary


def feed_posts(feed: List[Any], *, include_author: bool = True) -> List[Dict[str, Any]]:
    return [post_summary(item.post, include_author=include_author) for item in feed]


def thread_tree(node: Any) -> Optional[Dict[str, Any]]:
    """
    Rebuild a thread as nested ``{post..., replies: [...]}`` dicts.

    Not-found and blocked entries carry no ``post`` and are dropped together
    with everything beneath them; their siblings are kept.
    """
    post = getattr(node, "post", None) if node is not None else None
    if post is None:
        return None

    replies = []
    for child in getattr(node, "replies", None) or []:
        shaped = thread_tree(child)
        if shaped is not None:
            replies.append(shaped)

    tree = post_summary(post)
    tree["replies"] = replies
    return tree


def count_posts(tree: Optional[Dict[str, Any]]) -> int:
    if tree is None:
        return 0
    return 1 + sum(count_posts(reply) for reply in tree["replies"])


def actor_summary(actor: Any) -> Dict[str, Any]:
    return {
        "did": actor.did,
        "handle": actor.handle,
        "displayName": getattr(actor, "display_name", None),
        "avatar": getattr(actor, "avatar", None),
    }


def profile_summary(profile: Any) -> Dict[str, Any]:
    summary = actor_summary(profile)
    summary.update(
        {
            "description": getattr(profile, "description", None),
            "followersCount": getattr(profile, "followers_count", None),
            "followsCount": getattr(profile, "follows_count", None),
            "postsCount": getattr(profile, "posts_count", None),
        }
    )
    return summary


_LIST_PURPOSE_NAMES = {
    "app.bsky.graph.defs#curatelist": "curation",
    "app.bsky.graph.defs#modlist": "moderation",
}


def list_summary(view: Any) -> Dict[str, Any]:
    purpose = getattr(view, "purpose", None)
    return {
        "uri": view.uri,
        "cid": view.cid,
        "name": view.name,
        "purpose": _LIST_PURPOSE_NAMES.get(purpose, purpose),
        "description": getattr(view, "description", None),
        "itemCount": getattr(view, "list_item_count", None),
    }


def created(result: PostResult, message: str) -> Dict[str, Any]:
    """Success payload for a newly created post."""
    return {
        "success": True,
        **result.as_dict(),
        "message": f"{message} View at: {result.url}",
    }


def acknowledged(message: str, **extra: Any) -> Dict[str, Any]:
    return {"success": True, **extra, "message": message}
