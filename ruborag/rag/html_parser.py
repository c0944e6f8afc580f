"""HTML parser for extracting plain text from .html files.

Handles:
- Comment, script and style removal
- Tag stripping (block tags become word breaks)
- Entity decoding and whitespace collapsing
"""
import html
import re
from pathlib import Path
import structlog

logger = structlog.get_logger()

# Tag body, skipping over quoted attribute values that may contain ">"
_TAG_BODY = r"""(?:[^>"']|"[^"]*"|'[^']*')*"""


class HTMLTextExtractor:
    """Turns an HTML document into a single line of normalized text."""

    COMMENT_PATTERN = re.compile(r"<!--.*?-->", re.DOTALL)

    # Elements whose content is never readable text
    SCRIPT_STYLE_PATTERN = re.compile(
        r"<(script|style|template|noscript)\b" + _TAG_BODY + r">.*?</\1\s*>",
        re.DOTALL | re.IGNORECASE,
    )

    BLOCK_TAG_PATTERN = re.compile(
        r"</?\s*(address|article|aside|blockquote|body|br|dd|div|dl|dt|"
        r"figcaption|figure|footer|h[1-6]|head|header|hr|html|li|main|nav|ol|"
        r"p|pre|section|table|tbody|td|tfoot|th|thead|title|tr|ul)\b" + _TAG_BODY + ">",
        re.IGNORECASE,
    )

    TAG_PATTERN = re.compile("<" + _TAG_BODY + ">")

    WHITESPACE_PATTERN = re.compile(r"\s+")

    def parse_file(self, file_path: Path) -> str:
        """Read an HTML file and return its normalized text.

        Args:
            file_path: Path to the HTML file

        Returns:
            Normalized plain text

        Raises:
            FileNotFoundError: If file doesn't exist
            UnicodeDecodeError: If file is not valid UTF-8
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"HTML file not found: {file_path}")

        try:
            content = file_path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            logger.error("html_encoding_error", path=str(file_path), error=str(e))
            raise

        text = self.normalize(content)

        logger.info(
            "html_parsed",
            path=str(file_path),
            input_length=len(content),
            text_length=len(text),
        )
        return text

    def normalize(self, content: str) -> str:
        """Strip markup from an HTML string.

        The result holds no tags and no raw ``<`` or ``>``: angle brackets
        that were escaped in the source stay escaped. Tokens are separated
        by single spaces.
        """
        text = self.COMMENT_PATTERN.sub(" ", content)
        text = self.SCRIPT_STYLE_PATTERN.sub(" ", text)
        text = self.BLOCK_TAG_PATTERN.sub(" ", text)
        text = self.TAG_PATTERN.sub("", text)

        text = html.unescape(text)
        text = text.replace("<", "&lt;").replace(">", "&gt;")

        return self.WHITESPACE_PATTERN.sub(" ", text).strip()

