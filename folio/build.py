"""Site building functionality for Folio.

This module loads configuration and data, lists documents from the content
store, and hands them to the site assembler, which renders every document
and index and writes the output tree.

Key functions and classes:
- build_site: Main entry point to build the entire site.
- SiteAssembler: Renders documents and indexes, then writes all artifacts.
- load_config: Loads site configuration from folio.yaml.
- load_data: Loads site data from YAML files in the data directory.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .assets import StaticFileCopier
from .collections import DocumentCollection, Index, build_index, sort_documents
from .content import (
    DEFAULT_PERMALINK,
    DEFAULT_REQUIRED_FIELDS,
    ContentStore,
    Document,
    DocumentBuilder,
    url_to_output_path,
)
from .errors import DuplicateDocumentError, FilesystemError, MarkupError
from .feeds import FeedRegistry, create_default_feed_registry
from .html_utils import absolutize_html_urls
from .renderers import RendererRegistry
from .templates import TemplateEngine
from .utils import ensure_clean_dir

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "folio.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "output_dir": "output",
    "port": 4000,
    "root_url": "",
    "permalink": DEFAULT_PERMALINK,
    "required_fields": list(DEFAULT_REQUIRED_FIELDS),
    "index_layout": None,
    "highlight": True,
}


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        documents: All documents in index order.
        categories: Category index.
        tags: Tag index.
        output_dir: Directory where the site was built.
        data: Global site data dictionary.
        artifacts: Output-relative paths written, in write order.
    """

    documents: DocumentCollection
    categories: Index
    tags: Index
    output_dir: Path
    data: dict[str, Any]
    artifacts: list[str] = field(default_factory=list)


@dataclass
class _Artifact:
    identifier: str
    rel_path: str
    text: str
    source_path: Path | None = None


def _read_yaml(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise MarkupError(path.name, f"Invalid YAML in {path}: {exc}", exc, path) from exc
    except OSError as exc:
        raise FilesystemError(path.name, f"Could not read {path}: {exc}", exc, path) from exc


def load_config(project_root: Path) -> dict[str, Any]:
    """Load site configuration from folio.yaml.

    A missing file, an empty file, or a non-mapping document yields the
    defaults.

    Args:
        project_root: Root directory of the project.

    Returns:
        Configuration values with defaults applied.

    Raises:
        MarkupError: If folio.yaml is not valid YAML.
        FilesystemError: If it cannot be read.
    """
    config_path = project_root / CONFIG_FILENAME
    config = dict(DEFAULT_CONFIG)
    if config_path.exists():
        loaded = _read_yaml(config_path) or {}
        if isinstance(loaded, dict):
            config.update(loaded)
        else:
            logger.warning("Ignoring %s: expected a mapping", config_path)
    required = config.get("required_fields")
    if isinstance(required, str):
        config["required_fields"] = required.split()
    elif not required:
        config["required_fields"] = []
    return config


def load_data(project_root: Path) -> dict[str, Any]:
    """Load site data from YAML files in the data directory.

    `site.yaml` is merged at the top level; every other file is stored
    under its stem.

    Args:
        project_root: Root directory of the project.

    Returns:
        Dictionary containing merged data from all YAML files.

    Raises:
        MarkupError: If a data file is not valid YAML.
        FilesystemError: If a data file cannot be read.
    """
    data_dir = project_root / "data"
    data: dict[str, Any] = {}
    if not data_dir.exists():
        return data
    for path in sorted(data_dir.glob("*.yaml")):
        payload = _read_yaml(path) or {}
        if path.name == "site.yaml":
            if isinstance(payload, dict):
                data.update(payload)
            continue
        data[path.stem] = payload
    return data


class SiteAssembler:
    """Renders every document and index, then writes the output tree.

    All artifacts are rendered before the output directory is touched, so
    a template or markup failure leaves the previous output in place. A
    write failure aborts the remaining writes.

    Attributes:
        engine: Template engine used for documents and indexes.
        output_dir: Destination directory.
        root_url: When set, root-relative links are made absolute.
        feed_registry: Feeds written after the pages.
        static_copier: Copies non-document files, or None to skip.
        clean_output: Whether to empty the output directory before writing.
    """

    def __init__(
        self,
        engine: TemplateEngine,
        output_dir: Path,
        root_url: str = "",
        feed_registry: FeedRegistry | None = None,
        static_copier: StaticFileCopier | None = None,
        clean_output: bool = True,
    ):
        self.engine = engine
        self.output_dir = output_dir
        self.root_url = root_url
        self.feed_registry = feed_registry or create_default_feed_registry()
        self.static_copier = static_copier
        self.clean_output = clean_output

    def build(self, documents: Iterable[Document]) -> list[str]:
        """Render and write all documents and indexes.

        Args:
            documents: Documents to publish.

        Returns:
            Output-relative paths written, in write order.

        Raises:
            TemplateError: If a layout is undefined or fails.
            MarkupError: If a body cannot be parsed.
            DuplicateDocumentError: If two artifacts map to the same file.
            FilesystemError: If a write fails.
        """
        documents = DocumentCollection(sort_documents(documents))
        categories = build_index("categories", documents)
        tags = build_index("tags", documents)
        self.engine.update_collections(documents, categories, tags)

        artifacts = self.render_all(documents, categories, tags)
        self._prepare_output()
        written = [self._write(artifact) for artifact in artifacts]
        if self.static_copier is not None:
            written.extend(self.static_copier.run())
        written.extend(
            self.feed_registry.generate_all(self.output_dir, documents, self.engine.data)
        )
        logger.info(
            "Wrote %d documents, %d category and %d tag indexes to %s",
            len(documents),
            len(categories),
            len(tags),
            self.output_dir,
        )
        return written

    def render_all(
        self, documents: DocumentCollection, categories: Index, tags: Index
    ) -> list[_Artifact]:
        artifacts: list[_Artifact] = []
        claimed: dict[str, str] = {}

        def add(artifact: _Artifact) -> None:
            if artifact.rel_path in claimed:
                raise DuplicateDocumentError(
                    artifact.identifier,
                    f"Output {artifact.rel_path} is also produced by {claimed[artifact.rel_path]}",
                    source_path=artifact.source_path,
                )
            claimed[artifact.rel_path] = artifact.identifier
            artifacts.append(artifact)

        for document in documents:
            logger.debug("Rendering %s with layout %s", document.identifier, document.layout)
            add(
                _Artifact(
                    document.identifier,
                    document.output_path,
                    self.engine.render_document(document),
                    document.path,
                )
            )
        for index in (categories, tags):
            for term, members in index.items():
                url = index.url_for(term)
                add(
                    _Artifact(
                        f"{index.kind}/{term}",
                        url_to_output_path(url),
                        self.engine.render_index(index.kind, term, members, url),
                    )
                )
        if "index.html" not in claimed:
            add(
                _Artifact(
                    "index",
                    "index.html",
                    self.engine.render_index("home", None, documents, "/"),
                )
            )
        return artifacts

    def _prepare_output(self) -> None:
        try:
            if self.clean_output:
                ensure_clean_dir(self.output_dir)
            else:
                self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(
                None, f"Could not prepare output directory {self.output_dir}: {exc}", exc
            ) from exc

    def _write(self, artifact: _Artifact) -> str:
        text = artifact.text
        if self.root_url:
            text = absolutize_html_urls(text, self.root_url)
        target = self.output_dir / artifact.rel_path
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "w", encoding="utf-8") as f:
                f.write(text)
        except OSError as exc:
            raise FilesystemError(
                artifact.identifier,
                f"Could not write {target}: {exc}",
                exc,
                artifact.source_path,
            ) from exc
        logger.debug("Wrote %s", artifact.rel_path)
        return artifact.rel_path


def build_site(
    project_root: Path,
    include_drafts: bool = False,
    root_url: str | None = None,
    clean_output: bool = True,
    output_dir_override: Path | None = None,
) -> BuildResult:
    """Build the entire static site.

    Args:
        project_root: Root directory of the project.
        include_drafts: Whether to include draft documents (starting with _).
        root_url: Optional base URL to absolutize links with.
        clean_output: Whether to wipe the output directory before building.
        output_dir_override: Optional path to write the build output instead of config output_dir.

    Returns:
        BuildResult containing documents, indexes, output directory, and data.

    Raises:
        BuildError: Any subclass; the first failure aborts the build.
    """
    config = load_config(project_root)
    if root_url is not None:
        config["root_url"] = root_url
    resolved_root = str(config.get("root_url") or "")
    data = load_data(project_root)
    if resolved_root:
        data.setdefault("root_url", resolved_root)

    site_dir = project_root / "site"
    registry = RendererRegistry(highlight_code=bool(config.get("highlight", True)))
    store = ContentStore(
        site_dir,
        document_builder=DocumentBuilder(
            site_dir,
            required_fields=config["required_fields"],
            permalink=str(config.get("permalink") or DEFAULT_PERMALINK),
            renderer_registry=registry,
        ),
    )
    documents = store.list(include_drafts=include_drafts)
    logger.info("Loaded %d documents from %s", len(documents), site_dir)

    output_dir = output_dir_override or (project_root / config.get("output_dir", "output"))

    engine = TemplateEngine(
        site_dir,
        data,
        root_url=resolved_root,
        index_layout=config.get("index_layout") or None,
        renderer_registry=registry,
    )
    assembler = SiteAssembler(
        engine,
        output_dir,
        root_url=resolved_root,
        static_copier=StaticFileCopier(site_dir, output_dir),
        clean_output=clean_output,
    )
    artifacts = assembler.build(documents)
    categories = engine.categories
    tags = engine.tags
    return BuildResult(
        documents=documents,
        categories=categories,
        tags=tags,
        output_dir=output_dir,
        data=data,
        artifacts=artifacts,
    )
