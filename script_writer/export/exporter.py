import html
from pathlib import Path
from typing import Literal, Optional

from loguru import logger

from ..models.session import GenerationSession, SessionStatus

ExportFormat = Literal["txt", "md", "doc"]
EXPORT_FORMATS = ("txt", "md", "doc")

DOC_STYLE = (
    "body{font-family: 'SimSun', serif; padding: 40px;} "
    ".episode{margin-bottom: 60px; border-bottom: 1px solid #eee; padding-bottom: 40px;} "
    ".ep-title{font-weight: bold; font-size: 16pt; color: #1a56db; margin-bottom: 15px;} "
    ".content{font-size: 11pt; line-height: 2; color: #333; white-space: pre-wrap;}"
)

class ScriptExporter:
    """Render a session's episodes for reading or hand-off."""

    def __init__(self, session: GenerationSession, title: Optional[str] = None):
        """
        Args:
            session: Session whose produced episodes are exported
            title: Document title, defaults to the project id
        """
        self.session = session
        self.title = title or session.project_id

    @property
    def heading(self) -> str:
        heading = f"{self.title} - {self.session.style.script_style.value}"
        if self.session.status != SessionStatus.COMPLETE:
            heading += (
                f" ({self.session.status.value}: {len(self.session.produced_units)}"
                f"/{self.session.total_episodes} episodes)"
            )
        return heading

    def to_text(self) -> str:
        parts = [self.heading, ""]
        for ep in self.session.produced_units:
            parts.append(f"Episode {ep.number}: {ep.title}")
            parts.append(ep.content.strip())
            parts.append("")
        return "\n".join(parts)

    def to_markdown(self) -> str:
        parts = [f"# {self.heading}", ""]
        for ep in self.session.produced_units:
            parts.append(f"## Episode {ep.number}: {ep.title}")
            parts.append("")
            parts.append(ep.content.strip())
            parts.append("")
        return "\n".join(parts)

    def to_doc(self) -> str:
        """Word-compatible HTML, opened by Word as a .doc file."""
        body = [f"<h1>{html.escape(self.heading)}</h1>"]
        for ep in self.session.produced_units:
            body.append(
                '<div class="episode">'
                f'<div class="ep-title">Episode {ep.number}: {html.escape(ep.title)}</div>'
                f'<div class="content">{html.escape(ep.content)}</div>'
                "</div>"
            )
        return (
            "<html xmlns:o='urn:schemas-microsoft-com:office:office' "
            "xmlns:w='urn:schemas-microsoft-com:office:word' "
            "xmlns='http://www.w3.org/TR/REC-html40'>"
            f"<head><meta charset='utf-8'><style>{DOC_STYLE}</style></head><body>"
            + "".join(body)
            + "</body></html>"
        )

    def render(self, fmt: ExportFormat) -> str:
        if fmt == "txt":
            return self.to_text()
        if fmt == "md":
            return self.to_markdown()
        if fmt == "doc":
            return self.to_doc()
        raise ValueError(f"Unknown export format: {fmt}")

    def export(self, output_path: Path, fmt: ExportFormat = "md") -> Path:
        if not self.session.produced_units:
            raise ValueError(f"Project {self.session.project_id} has no episodes to export")

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.render(fmt), encoding="utf-8")

        logger.success(
            f"Exported {len(self.session.produced_units)} episodes to {output_path}"
        )
        return output_path
