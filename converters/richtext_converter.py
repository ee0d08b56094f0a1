"""Rich-text (HTML) to Markdown conversion for Quiver text cells."""

import logging
import re
from typing import Optional

from bs4 import BeautifulSoup
from markdownify import MarkdownConverter as MarkdownifyConverter

STRIP_TAGS = ('script', 'style', 'meta', 'link')


class RichTextConverter(MarkdownifyConverter):
    """
    Converts the HTML of Quiver text cells to Markdown.

    Extends markdownify.MarkdownConverter with Quiver specifics:
    - quiver resource images keep their src so the link rewriter can map them
    - <pre> blocks become fenced code blocks
    - excessive blank lines are collapsed
    """

    def __init__(self, logger: Optional[logging.Logger] = None, **kwargs):
        """Initialize converter with logger and markdownify options."""
        markdownify_options = {
            'heading_style': 'ATX',
            'bullets': '-',
            'escape_asterisks': False,
            'escape_underscores': False,
        }
        markdownify_options.update(kwargs)
        super().__init__(**markdownify_options)

        self.logger = logger or logging.getLogger('quiver_obsidian_migrator.converters.richtext')

    def convert(self, html_content: str) -> str:
        """Convert an HTML string to markdown."""
        if not html_content or not html_content.strip():
            return ''

        soup = self._parse_html(html_content)
        stripped = soup.find_all(STRIP_TAGS)
        if stripped:
            self.logger.debug(f"Dropping {len(stripped)} non-content tag(s) from rich text")
        for tag in stripped:
            tag.decompose()

        markdown = super().convert_soup(soup)
        return self._clean_markdown(markdown)

    def _parse_html(self, html_content: str) -> BeautifulSoup:
        """Parse HTML content with BeautifulSoup."""
        return BeautifulSoup(html_content, 'lxml')

    def _clean_markdown(self, markdown: str) -> str:
        """Strip trailing whitespace and collapse runs of blank lines."""
        lines = [line.rstrip() for line in markdown.split('\n')]
        markdown = '\n'.join(lines)
        markdown = re.sub(r'\n{3,}', '\n\n', markdown)
        return markdown.strip('\n')

    def convert_img(self, el, text, parent_tags=None, **kwargs):
        """Handle images."""
        src = el.get('src', '')
        alt = el.get('alt', '') or el.get('title', '')
        return f'![{alt}]({src})'

    def convert_pre(self, el, text, parent_tags=None, **kwargs):
        """Handle preformatted blocks as fenced code."""
        code = el.get_text()
        if not code:
            return ''
        language = ''
        for cls in el.get('class', []) or []:
            if cls.startswith('language-'):
                language = cls[len('language-'):]
                break
        return f"\n\n```{language}\n{code.rstrip()}\n```\n\n"


def convert_richtext(html_content: str, logger: Optional[logging.Logger] = None) -> str:
    """Convenience function converting one HTML string to markdown."""
    return RichTextConverter(logger=logger).convert(html_content)


__all__ = ['RichTextConverter', 'convert_richtext']
