"""
Keyword taxonomies and rule-based text classification for Sift.

The taxonomies are read-only module constants. Matching is plain substring
search over lowercased text, so short keywords such as ``ai`` also hit inside
longer words; downstream category display relies on exactly this behaviour.
"""
from types import MappingProxyType
from typing import List, Mapping, Tuple

# Content tags attached to every extraction result
TAG_KEYWORDS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    'tech': ('technology', 'ai', 'artificial intelligence', 'software', 'app'),
    'business': ('business', 'company', 'revenue', 'profit', 'market'),
    'finance': ('finance', 'money', 'investment', 'stock', 'crypto'),
    'startup': ('startup', 'founder', 'funding', 'venture'),
    'news': ('news', 'breaking', 'update', 'report'),
    'data': ('data', 'chart', 'graph', 'statistics'),
})

# Newsletter categories guessed from a message subject and body
CATEGORY_KEYWORDS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    'tech': ('technology', 'ai', 'software', 'programming', 'tech', 'startup',
             'developer', 'code', 'saas'),
    'business': ('business', 'finance', 'investing', 'marketing', 'entrepreneur',
                 'revenue', 'growth', 'strategy'),
    'design': ('design', 'ux', 'ui', 'creative', 'visual', 'brand', 'figma', 'adobe'),
    'news': ('news', 'politics', 'current events', 'world', 'breaking', 'report',
             'analysis'),
    'lifestyle': ('lifestyle', 'health', 'wellness', 'personal', 'fitness', 'food',
                  'travel'),
    'education': ('education', 'learning', 'course', 'tutorial', 'university',
                  'study', 'research'),
    'crypto': ('crypto', 'bitcoin', 'ethereum', 'blockchain', 'defi', 'nft', 'trading'),
})

# Newsletter categories guessed from a landing page (first match wins)
PAGE_CATEGORY_KEYWORDS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    'tech': ('tech', 'technology', 'programming', 'developer', 'code', 'software',
             'ai', 'artificial intelligence'),
    'business': ('business', 'startup', 'entrepreneur', 'finance', 'investing',
                 'economy', 'market'),
    'design': ('design', 'ux', 'ui', 'creative', 'art', 'visual'),
    'finance': ('finance', 'investing', 'money', 'crypto', 'stocks', 'trading'),
    'news': ('news', 'daily', 'weekly', 'current events', 'politics'),
    'lifestyle': ('lifestyle', 'health', 'wellness', 'personal', 'productivity'),
    'marketing': ('marketing', 'growth', 'seo', 'social media', 'advertising'),
})

DEFAULT_CATEGORY = 'other'


def extract_tags(text: str) -> List[str]:
    """
    Tags whose keywords occur in the text, in taxonomy order.

    Args:
        text: Combined title and section content

    Returns:
        List of tag names
    """
    lower_text = (text or "").lower()
    return [
        tag for tag, keywords in TAG_KEYWORDS.items()
        if any(keyword in lower_text for keyword in keywords)
    ]


def detect_category(text: str) -> str:
    """
    Score every category by how many of its keywords appear in the text.

    The highest score wins; on a tie the category declared first wins.
    With no hits at all the category is ``other``.

    Args:
        text: Subject and body of a message

    Returns:
        Category name
    """
    lower_text = (text or "").lower()

    best_category, best_score = DEFAULT_CATEGORY, 0
    for category, keywords in CATEGORY_KEYWORDS.items():
        score = sum(1 for keyword in keywords if keyword in lower_text)
        if score > best_score:
            best_category, best_score = category, score

    return best_category


def guess_page_category(title: str, description: str, url: str) -> str:
    """
    First category with any keyword in the page title, description or URL.
    """
    text = f"{title} {description} {url}".lower()
    for category, keywords in PAGE_CATEGORY_KEYWORDS.items():
        if any(keyword in text for keyword in keywords):
            return category
    return DEFAULT_CATEGORY
