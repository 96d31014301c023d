"""Topic frequency counting and emerging-topic extraction."""

import re
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence

from .config import MAX_EMERGING_TOPICS
from .models import EmergingTopic, RedditPost, TrendingRepo

STOP_WORDS: frozenset[str] = frozenset(
    {
        # common English
        "the", "and", "for", "with", "this", "that", "from", "your", "have",
        "are", "was", "were", "been", "being", "will", "would", "could",
        "should", "just", "about", "into", "what", "when", "where", "which",
        "while", "who", "how", "why", "all", "each", "every", "both", "few",
        "more", "most", "other", "some", "such", "than", "too", "very", "can",
        "not", "now", "only", "own", "same", "then", "there", "these", "they",
        "here", "like", "use", "using", "used", "make", "made", "get", "got",
        "also", "does", "dont", "want", "know", "think", "really", "much",
        "need", "even", "well", "back", "still", "good", "going", "something",
        "things", "thing", "work", "working", "works", "look", "looking",
        "first", "time", "long", "best", "better", "over", "after", "before",
        # markup and URLs
        "href", "http", "https", "www", "com", "org", "net", "html", "class",
        "style", "span", "div", "table", "tbody", "thead", "img", "src", "alt",
        "title", "width", "height", "border", "cellpadding", "cellspacing",
        # reddit boilerplate
        "sc_off", "sc_on", "submitted", "reddit", "subreddit", "comments",
        "comment", "post", "posts", "upvote", "upvotes", "downvote", "vote",
        "votes", "edit", "edited", "deleted", "removed", "nbsp", "amp", "quot",
        "apos", "mdash", "ndash", "hellip", "cdata",
    }
)

_WORD_SPLIT = re.compile(r"\W+")
_NUMBER = re.compile(r"^\d+$")
_HASH_LIKE = re.compile(r"^[a-f0-9]{6,}$")
_MIN_WORD_LENGTH = 4


def _is_topic_word(word: str) -> bool:
    return (
        len(word) >= _MIN_WORD_LENGTH
        and word not in STOP_WORDS
        and not _NUMBER.match(word)
        and not _HASH_LIKE.match(word)
    )


def tokenize(text: str) -> list[str]:
    """Split text into lower-cased candidate topic words."""
    return [w for w in _WORD_SPLIT.split(text.lower()) if _is_topic_word(w)]


def count_topics(
    repos: Iterable[TrendingRepo] = (), posts: Iterable[RedditPost] = ()
) -> dict[str, int]:
    """Count topic frequencies across repositories and posts.

    Repository topic tags count as whole topics; post titles and content
    are tokenized into words.

    Args:
        repos: Repositories whose topic tags are counted
        posts: Posts whose title and content words are counted

    Returns:
        Mapping of lower-cased topic to frequency
    """
    counts: Counter[str] = Counter()
    for repo in repos:
        counts.update(t.lower() for t in repo.topics if t and t.lower() not in STOP_WORDS)
    for post in posts:
        counts.update(tokenize(f"{post.title} {post.content}"))
    return dict(counts)


def extract_emerging_topics(
    current: Mapping[str, int],
    previous: Sequence[Mapping[str, int]] = (),
    min_count: int = 2,
    growth_threshold: float = 1.5,
    limit: int = MAX_EMERGING_TOPICS,
) -> list[EmergingTopic]:
    """Promote topics whose frequency this week stands out.

    With prior weeks available, a topic is emerging when its count is at
    least ``min_count`` and exceeds ``growth_threshold`` times its average
    count across those weeks. Without history, topics are ranked by
    frequency alone.

    Args:
        current: Topic counts for this week
        previous: Topic counts for earlier weeks (any order)
        min_count: Minimum count this week
        growth_threshold: Required ratio over the prior average
        limit: Maximum number of topics returned

    Returns:
        Emerging topics, strongest first
    """
    if not previous:
        ranked = sorted(current.items(), key=lambda kv: (-kv[1], kv[0]))
        return [
            EmergingTopic(topic=topic, count=count, previous_average=0.0, growth=None)
            for topic, count in ranked[:limit]
        ]

    emerging: list[EmergingTopic] = []
    for topic, count in current.items():
        average = sum(week.get(topic, 0) for week in previous) / len(previous)
        if count < min_count or count <= growth_threshold * average:
            continue
        emerging.append(
            EmergingTopic(
                topic=topic,
                count=count,
                previous_average=round(average, 3),
                growth=round(count / average, 3) if average else None,
            )
        )

    emerging.sort(key=lambda t: (-(t.count - t.previous_average), -t.count, t.topic))
    return emerging[:limit]
