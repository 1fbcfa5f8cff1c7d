"""Folio static blog generator.

Folio reads Markdown or HTML documents with YAML front matter, renders each
through a named Jinja2 layout, and writes one page per document plus
category and tag index pages, a home listing, a sitemap, and an RSS feed.

Pipeline:
- Content Store (content.py): discovers documents and parses front matter.
- Renderer (renderers.py, templates.py): renders bodies and wraps them in layouts.
- Site Assembler (build.py): builds indexes and writes the output tree.

The main entry point is the CLI module, which provides commands for
scaffolding projects, building sites, and serving them locally.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
