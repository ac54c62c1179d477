"""Post text assembly within each network's character limit."""

from typing import Iterable, List, Optional

PLATFORM_MAX_LENGTH = {
    "twitter": 280,
    "linkedin": 3000,
    "facebook": 5000,
    "instagram": 2200,
    "tiktok": 2200,
    "youtube": 5000,
}
DEFAULT_MAX_LENGTH = 2000

# Headroom kept free while appending hashtags
HASHTAG_MARGIN = 10
ELLIPSIS = "..."


def max_length_for(platform: str) -> int:
    return PLATFORM_MAX_LENGTH.get(platform.lower(), DEFAULT_MAX_LENGTH)


def normalize_hashtags(hashtags: Iterable[str]) -> List[str]:
    result: List[str] = []
    for tag in hashtags:
        tag = (tag or "").strip().replace(" ", "")
        if not tag or tag == "#":
            continue
        if not tag.startswith("#"):
            tag = f"#{tag}"
        if tag not in result:
            result.append(tag)
    return result


def normalize_mentions(mentions: Iterable[str]) -> List[str]:
    result: List[str] = []
    for mention in mentions:
        mention = (mention or "").strip().lstrip("@")
        if mention and mention not in result:
            result.append(mention)
    return result


def build_post_content(
    platform: str,
    title: str,
    description: Optional[str] = None,
    hashtags: Iterable[str] = (),
    mentions: Iterable[str] = (),
) -> str:
    """
    Compose the post body for ``platform``.

    Title and description come first, then ``@mentions``, then hashtags.
    When the hashtags do not all fit, as many as fit under the limit minus a
    small margin are kept. Anything still too long is cut with an ellipsis.
    """
    limit = max_length_for(platform)

    content = (title or "").strip()
    if description and description.strip():
        content = f"{content}\n\n{description.strip()}" if content else description.strip()

    mention_list = normalize_mentions(mentions)
    if mention_list:
        content += "\n\n" + " ".join(f"@{m}" for m in mention_list)

    tags = normalize_hashtags(hashtags)
    if tags:
        line = " ".join(tags)
        if len(content) + 2 + len(line) > limit:
            budget = limit - HASHTAG_MARGIN - len(content)
            line = ""
            for tag in tags:
                candidate = f"{line} {tag}" if line else tag
                if len(candidate) > budget:
                    break
                line = candidate
        if line:
            content = f"{content}\n\n{line}" if content else line

    if len(content) > limit:
        content = content[:limit - len(ELLIPSIS)].rstrip() + ELLIPSIS
    return content
