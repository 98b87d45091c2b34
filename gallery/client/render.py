"""
HTML rendering of the gallery state.

One section per month, newest month first, each with a heading, an image
count and the month's images. A navigation bar links to every section;
`RenderedGallery.positions` maps a month to its section index and
`scroll_target` gives the anchor to scroll that section into view.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from jinja2 import DictLoader, Environment, select_autoescape

from gallery.client.grouping import group_by_month, image_count_label, month_name, month_short, sorted_months
from gallery.client.state import GalleryState, ImageData

GALLERY_HTML = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Photo Gallery</title>
  <style>
    html { scroll-behavior: smooth; }
    body { background: #030712; color: #e5e7eb; font-family: sans-serif; margin: 0; }
    header { position: sticky; top: 0; background: rgba(3, 7, 18, 0.95); padding: 1rem; }
    nav a { margin: 0 0.25rem; color: #d1d5db; }
    section { padding: 2rem; scroll-margin-top: 6rem; }
    figure { max-width: 56rem; margin: 0 auto 2rem; text-align: center; }
    figure img { width: 100%; height: auto; }
  </style>
</head>
<body>
{% if sections %}
  <header>
    <p>{{ total_label }}</p>
    <nav>{% for section in sections %}<a href="#{{ section.anchor }}" title="{{ section.heading }}">{{ section.month_year | month_short }}</a>{% endfor %}</nav>
  </header>
  {% for section in sections %}
  <section id="{{ section.anchor }}">
    <h2>{{ section.heading }}</h2>
    <p>{{ section.count_label }}</p>
    {% for image in section.images %}
    <figure>
      <img src="{{ image.url }}" alt="Uploaded on {{ image.date | image_date }}">
      <figcaption>{{ image.date | image_date }}{% if is_authenticated %} <span class="delete" data-id="{{ image.id }}">Delete</span>{% endif %}</figcaption>
    </figure>
    {% endfor %}
  </section>
  {% endfor %}
{% else %}
  <header></header>
  <main><p>No images uploaded yet</p><p>Upload JPG images to get started</p></main>
{% endif %}
</body>
</html>
"""


def month_anchor(month_year: str) -> str:
    return f"month-{month_year}"


def format_image_date(date: datetime) -> str:
    """'Mar 15, 2024, 10:00 AM'."""
    return f"{date:%b} {date.day}, {date.year}, {date:%I:%M %p}"


jinja_env = Environment(
    loader=DictLoader({"gallery.html": GALLERY_HTML}),
    autoescape=select_autoescape(["html", "xml"]),
)
jinja_env.filters["month_short"] = month_short
jinja_env.filters["image_date"] = format_image_date


@dataclass
class MonthSection:
    month_year: str
    heading: str
    count_label: str
    anchor: str
    images: list[ImageData]


@dataclass
class RenderedGallery:
    sections: list[MonthSection] = field(default_factory=list)
    positions: dict[str, int] = field(default_factory=dict)
    html: str = ""

    @property
    def months(self) -> list[str]:
        return [section.month_year for section in self.sections]

    def scroll_target(self, month_year: str) -> Optional[str]:
        """Fragment that brings the month's section into view, or None."""
        position = self.positions.get(month_year)
        if position is None:
            return None
        return f"#{self.sections[position].anchor}"


def build_sections(images: list[ImageData]) -> list[MonthSection]:
    groups = group_by_month(images)
    return [
        MonthSection(
            month_year=month,
            heading=month_name(month),
            count_label=image_count_label(len(groups[month])),
            anchor=month_anchor(month),
            images=groups[month],
        )
        for month in sorted_months(groups)
    ]


def render_gallery(state: GalleryState) -> RenderedGallery:
    sections = build_sections(state.images)
    positions = {section.month_year: index for index, section in enumerate(sections)}
    html = jinja_env.get_template("gallery.html").render(
        sections=sections,
        is_authenticated=state.is_authenticated,
        total_label=image_count_label(len(state.images)),
    )
    return RenderedGallery(sections=sections, positions=positions, html=html)
