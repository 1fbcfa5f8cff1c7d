"""Command-line interface for Folio.

Commands:
- new: Scaffold a new Folio project.
- build: Build the site into the output directory.
- serve: Run the local development server with live reload.
- post: Create a new dated post interactively.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from datetime import datetime
from pathlib import Path

import click
import questionary

from . import __version__
from .errors import BuildError
from .utils import slugify, strip_date_prefix

_SCAFFOLD_FILES = {
    "folio.yaml": (
        "output_dir: output\n"
        "port: 4000\n"
        "root_url: \"\"\n"
        "permalink: /:categories/:year/:month/:day/:slug/\n"
    ),
    "data/site.yaml": "title: My Blog\nurl: \"\"\ndescription: Notes and essays\n",
    "site/_layouts/default.html.jinja": (
        "<!DOCTYPE html>\n"
        "<html lang=\"en\">\n"
        "<head>\n"
        "<meta charset=\"utf-8\">\n"
        "<title>{{ page.title }} | {{ site.title }}</title>\n"
        "<style>{{ pygments_css() }}</style>\n"
        "</head>\n"
        "<body>\n"
        "{% include \"header.html.jinja\" %}\n"
        "{% block main %}{{ content }}{% endblock %}\n"
        "</body>\n"
        "</html>\n"
    ),
    "site/_layouts/post.html.jinja": (
        "{% extends \"default.html.jinja\" %}\n"
        "{% block main %}\n"
        "<article>\n"
        "<h1>{{ page.title }}</h1>\n"
        "<time datetime=\"{{ page.date.strftime('%Y-%m-%d') }}\">{{ page.date.strftime('%B %d, %Y') }}</time>\n"
        "{{ content }}\n"
        "<p>{% for c in page.categories %}<a href=\"{{ url_for(categories.url_for(c)) }}\">{{ c }}</a> {% endfor %}</p>\n"
        "</article>\n"
        "{% endblock %}\n"
    ),
    "site/_partials/header.html.jinja": (
        "<header><a href=\"{{ url_for('/') }}\">{{ site.title }}</a></header>\n"
    ),
    "site/posts/{date}-hello-world.md": (
        "---\n"
        "layout: post\n"
        "title: Hello World\n"
        "categories: [general]\n"
        "tags: [welcome]\n"
        "---\n"
        "\n"
        "This is the first post.\n"
    ),
}


@click.group()
@click.version_option(version=__version__, prog_name="folio")
@click.option("-v", "--verbose", is_flag=True, help="Log build progress")
def cli(verbose: bool):
    """Folio static blog generator."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("name")
def new(name: str):
    """Scaffold a new Folio project."""
    target = Path(name).resolve()
    if target.exists() and any(target.iterdir()):
        raise click.ClickException(
            f"Refusing to initialize into non-empty directory: {target}"
        )
    _scaffold(target)
    click.echo(f"New Folio site created at {target}")


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft documents")
@click.option("--root-url", default=None, help="Absolutize links against this URL")
@click.option(
    "--output",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Write to this directory instead of the configured output_dir",
)
def build(drafts: bool, root_url: str | None, output: Path | None):
    """Build the site into the output directory."""
    project_root = Path.cwd()
    from .build import build_site

    try:
        result = build_site(
            project_root,
            include_drafts=drafts,
            root_url=root_url,
            output_dir_override=output,
        )
    except BuildError as exc:
        _report_build_error(exc, project_root)
        raise SystemExit(1) from None
    click.echo(
        f"Built {len(result.documents)} documents "
        f"({len(result.categories)} categories, {len(result.tags)} tags) "
        f"into {result.output_dir}"
    )


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft documents")
@click.option(
    "--port",
    type=int,
    required=False,
    help="Port to run the dev server (overrides folio.yaml)",
)
@click.option(
    "--ws-port",
    type=int,
    required=False,
    help="Port for the live reload websocket server (overrides folio.yaml ws_port)",
)
def serve(drafts: bool, port: int | None, ws_port: int | None):
    """Serve the site locally with live reload."""
    project_root = Path.cwd()
    from .server import DevServer

    try:
        server = DevServer(project_root, http_port=port, ws_port=ws_port)
        server.start(include_drafts=drafts)
    except BuildError as exc:
        _report_build_error(exc, project_root)
        raise SystemExit(1) from None


@cli.command()
def post():
    """Create a new dated post interactively."""
    project_root = Path.cwd()
    site_dir = project_root / "site"
    if not site_dir.exists():
        raise click.ClickException(
            "No site/ directory found. Run this command from a Folio project root."
        )

    layouts = _get_layouts(site_dir)
    folders = _get_content_folders(site_dir)

    title = questionary.text(
        "Title:",
        validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
        style=_questionary_style(),
    ).ask()
    if title is None:
        raise click.Abort()

    folder = questionary.select(
        "Folder:", choices=folders, style=_questionary_style()
    ).ask()
    if folder is None:
        raise click.Abort()

    layout = questionary.select(
        "Layout:", choices=layouts or ["post"], style=_questionary_style()
    ).ask()
    if layout is None:
        raise click.Abort()

    categories = questionary.text(
        "Categories (space separated):", style=_questionary_style()
    ).ask()
    if categories is None:
        raise click.Abort()

    title = title.strip()
    slug = slugify(title)
    target_dir = site_dir if folder == ". (root)" else site_dir / folder
    existing = _get_existing_slugs(target_dir)
    if slug in existing:
        raise click.ClickException(
            f"A post with slug '{slug}' already exists: {existing[slug]}"
        )

    now = datetime.now()
    target_path = target_dir / f"{now:%Y-%m-%d}-{slug}.md"
    target_dir.mkdir(parents=True, exist_ok=True)
    target_path.write_text(
        _post_template(title, layout, categories.split(), now), encoding="utf-8"
    )
    click.echo(f"Created {target_path.relative_to(project_root)}")


def _report_build_error(exc: BuildError, project_root: Path) -> None:
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    if exc.identifier:
        click.echo(click.style(f"  Document: {exc.identifier}", fg="yellow"), err=True)
    if exc.source_path:
        try:
            shown = exc.source_path.relative_to(project_root)
        except ValueError:
            shown = exc.source_path
        click.echo(click.style(f"  File: {shown}", fg="yellow"), err=True)
    click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)


def _post_template(
    title: str, layout: str, categories: list[str], when: datetime
) -> str:
    escaped = title.replace("\\", "\\\\").replace('"', '\\"')
    lines = [
        "---",
        f"layout: {layout}",
        f'title: "{escaped}"',
        f"date: {when:%Y-%m-%d %H:%M:%S}",
        f"categories: [{', '.join(categories)}]",
        "tags: []",
        "---",
        "",
        "",
    ]
    return "\n".join(lines)


def _get_layouts(site_dir: Path) -> list[str]:
    """Layout names defined under site/_layouts."""
    layout_dir = site_dir / "_layouts"
    if not layout_dir.exists():
        return []
    names = set()
    for path in layout_dir.rglob("*"):
        if path.is_file():
            rel = path.relative_to(layout_dir).as_posix()
            for suffix in (".html.jinja", ".jinja", ".html"):
                if rel.endswith(suffix):
                    names.add(rel[: -len(suffix)])
                    break
    return sorted(names)


def _get_content_folders(site_dir: Path) -> list[str]:
    """Content folders in the site directory, excluding _ prefixed ones."""
    folders = sorted(
        path.name
        for path in site_dir.iterdir()
        if path.is_dir() and not path.name.startswith(("_", "."))
    )
    folders.insert(0, ". (root)")
    return folders


def _get_existing_slugs(folder: Path) -> dict[str, str]:
    """Map slug to filename for posts already in a folder."""
    slugs: dict[str, str] = {}
    if folder.exists():
        for f in sorted(folder.iterdir()):
            if f.is_file() and f.suffix in (".md", ".markdown", ".html"):
                slugs[slugify(strip_date_prefix(f.stem))] = f.name
    return slugs


def _questionary_style():
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def main():
    """Entry point for the CLI application."""
    cli()


def _scaffold(root: Path) -> None:
    """Write the starter project files.

    Args:
        root: Root directory for the new project.
    """
    today = datetime.now().strftime("%Y-%m-%d")
    for rel_path, content in _SCAFFOLD_FILES.items():
        dest_path = root / rel_path.format(date=today)
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        dest_path.write_text(content, encoding="utf-8")
    (root / ".gitignore").write_text("output/\noutput.staging/\n", encoding="utf-8")
    _try_git_init(root)


def _try_git_init(root: Path) -> None:
    """Initialize a git repository if git is available."""
    if os.environ.get("FOLIO_SKIP_GIT_INIT") == "1":
        return
    git_bin = shutil.which("git")
    if not git_bin:
        return
    try:
        subprocess.run([git_bin, "init"], cwd=root, check=True, capture_output=True)
    except (OSError, subprocess.CalledProcessError) as exc:
        click.echo(f"Skipping git init: {exc}", err=True)
