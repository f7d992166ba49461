import html
import os
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

import markdown

# -----------------------------------------------------------------------------
# Directory Configuration (paths relative to `pitchmatch/storage/`)
# -----------------------------------------------------------------------------
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
TEMPLATE_HTML_PATH = os.path.join(BASE_DIR, "template.html")   # Deck HTML template
STYLESHEET_PATH = os.path.join(BASE_DIR, "styles.css")         # CSS file

SLIDE_LABELS = {
    "problem": "Problem",
    "solution": "Solution",
    "market": "Market",
    "business_model": "Business Model",
    "ask": "The Ask",
}

# -----------------------------------------------------------------------------
# Helper Functions
# -----------------------------------------------------------------------------
def read_file(file_path):
    """
    Reads and returns the entire content of a file as a string.
    """
    with open(file_path, "r", encoding="utf-8") as file:
        return file.read()


def convert_markdown_to_html(markdown_text, slide_number=1, slide_title=None):
    """
    Converts slide Markdown into HTML.

    Args:
        markdown_text (str): The raw markdown text to convert.
        slide_number (int): Used to add custom classes to <table> tags for styling.
        slide_title (str, optional): The slide title, used to remove a repeated heading.

    Returns:
        str: The converted HTML string.
    """
    # 1) Strip code block delimiters if the model wrapped the content
    if markdown_text.strip().startswith("```"):
        match = re.search(r"```(?:markdown)?\n(.*?)```", markdown_text, re.DOTALL)
        if match:
            markdown_text = match.group(1)

    # 2) Remove the slide title if the content repeats it as a heading
    if slide_title:
        escaped_title = re.escape(slide_title)
        markdown_text = re.sub(
            rf"^#{{1,4}}\s*{escaped_title}\s*$", "", markdown_text, flags=re.MULTILINE
        )

    html = markdown.markdown(
        markdown_text,
        extensions=[
            "tables",
            "fenced_code",
            "nl2br",
            "sane_lists",
        ]
    )

    html = html.replace("<table>", f'<table class="slide-{slide_number}">')
    return html


def clean_title(title):
    """
    Removes numeric prefixes ('1) ', '2. ') and 'Slide X:' labels from a title.
    """
    title = re.sub(r'^\d+[\).]\s*', '', title.strip())
    match = re.match(r'^Slide \d+:\s*(.+)$', title)
    if match:
        return match.group(1)
    return title


def render_pitch_deck_html(
    startup_title: str,
    slides: List[Dict[str, Any]],
    founder_name: str = "",
    company: str = "",
    generated_at: Optional[datetime] = None,
) -> str:
    """
    Assemble the full deck document: a cover page followed by one page per
    slide, each with its type label and page number.
    """
    template_html = read_file(TEMPLATE_HTML_PATH)

    slides_html = ""
    for i, slide in enumerate(slides, start=1):
        title = clean_title(slide.get("title") or SLIDE_LABELS.get(slide.get("type"), f"Slide {i}"))
        label = SLIDE_LABELS.get(slide.get("type"), "")

        slide_html = f'<div class="page slide slide-{slide.get("type", "other")}">\n'
        slide_html += f'<div class="slide-label">{label}</div>\n'
        slide_html += f'<h2 id="slide-{i}">{html.escape(html.unescape(title))}</h2>\n'
        slide_html += convert_markdown_to_html(slide.get("content") or "", i, title)
        slide_html += f'\n<div class="page-number">{i + 1}</div>\n'
        slide_html += '</div>\n'
        slides_html += slide_html

    date_str = (generated_at or datetime.now()).strftime("%b %d, %Y")

    return template_html.format(
        startup_title=html.escape(startup_title),
        founder_name=html.escape(founder_name),
        company=html.escape(company),
        date=date_str,
        slide_count=len(slides),
        content=slides_html,
    )


def _html_to_pdf(html: str, css: str) -> bytes:
    # WeasyPrint needs Pango at import time, so load it only when rendering.
    from weasyprint import HTML, CSS

    return HTML(string=html, base_url=BASE_DIR).write_pdf(stylesheets=[CSS(string=css)])


def generate_pdf(
    startup_title: str,
    slides: List[Dict[str, Any]],
    founder_name: str = "",
    company: str = "",
    generated_at: Optional[datetime] = None,
) -> bytes:
    """Render the deck (cover page plus one page per slide) to PDF bytes."""
    filled_html = render_pitch_deck_html(
        startup_title,
        slides,
        founder_name=founder_name,
        company=company,
        generated_at=generated_at,
    )
    return _html_to_pdf(filled_html, read_file(STYLESHEET_PATH))
