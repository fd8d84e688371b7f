"""Small text helpers shared by prompts, logging and export."""


def detect_language(text: str) -> str:
    """Detect if text is primarily Chinese or English.

    Returns "zh" or "en".
    """
    sample = text[:500]
    cjk_count = sum(1 for c in sample if '\u4e00' <= c <= '\u9fff')
    total_alpha = max(
        1, sum(1 for c in sample if c.isalpha() or '\u4e00' <= c <= '\u9fff')
    )
    return "zh" if (cjk_count / total_alpha) > 0.3 else "en"


def resolve_language(language: str, *samples: str) -> str:
    if language in ("zh", "en"):
        return language
    for sample in samples:
        if sample and sample.strip():
            return detect_language(sample)
    return "zh"


def preview(text: str, limit: int = 200) -> str:
    """One-line excerpt for log messages."""
    flat = " ".join((text or "").split())
    return flat if len(flat) <= limit else flat[:limit] + "..."


def clip_head(text: str, max_chars: int) -> str:
    """Keep the first ``max_chars`` characters."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars]
