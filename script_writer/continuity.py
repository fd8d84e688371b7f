"""Resume-point excerpts threaded from one batch into the next."""

from .models.script import Episode

LABELS = {
    "zh": "【第{number}集 结尾内容参考】\n标题：{title}\n内容：",
    "en": "[Ending of episode {number}]\nTitle: {title}\nContent: ",
}


class ContinuityContext:
    """Derive a bounded trailing excerpt from the last produced episode.

    The excerpt is the final ``tail_chars`` characters of the episode content
    behind a label naming the episode. Pure and deterministic.
    """

    def __init__(self, tail_chars: int = 500, language: str = "zh"):
        if tail_chars <= 0:
            raise ValueError("tail_chars must be positive")
        self.tail_chars = tail_chars
        self.language = language if language in LABELS else "zh"

    def label(self, unit: Episode) -> str:
        return LABELS[self.language].format(number=unit.number, title=unit.title)

    def derive(self, unit: Episode) -> str:
        return self.label(unit) + unit.content[-self.tail_chars:]
