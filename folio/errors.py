"""Error types for Folio.

Every failure during a build is raised as a subclass of BuildError so the
CLI can report it with the offending document identifier and source file.
None of these are recovered from inside the pipeline; the first one aborts
the build.

Hierarchy:
    BuildError
    ├── NotFoundError
    │   └── MissingMetadataError
    ├── DuplicateDocumentError
    ├── TemplateError
    ├── MarkupError
    └── FilesystemError
"""

from __future__ import annotations

from pathlib import Path


class BuildError(Exception):
    """Error during site build with document context.

    Attributes:
        identifier: Identifier of the document (or index) being processed.
        message: Human-readable error message.
        original_error: The original exception that was caught, if any.
        source_path: Path to the source file, when one is known.
    """

    def __init__(
        self,
        identifier: str | None,
        message: str,
        original_error: Exception | None = None,
        source_path: Path | None = None,
    ):
        self.identifier = identifier
        self.message = message
        self.original_error = original_error
        self.source_path = source_path
        prefix = identifier or (str(source_path) if source_path else "")
        super().__init__(f"{prefix}: {message}" if prefix else message)


class NotFoundError(BuildError):
    """Missing content root, document, or layout file."""


class MissingMetadataError(NotFoundError):
    """A required front-matter field is absent.

    Attributes:
        fields: Names of the missing fields.
    """

    def __init__(
        self,
        identifier: str | None,
        fields: list[str],
        source_path: Path | None = None,
    ):
        self.fields = list(fields)
        super().__init__(
            identifier,
            f"Missing required metadata: {', '.join(self.fields)}",
            source_path=source_path,
        )


class DuplicateDocumentError(BuildError):
    """Two documents share an identifier or permalink."""


class TemplateError(BuildError):
    """A layout is undefined or cannot be rendered.

    Attributes:
        layout: Name of the offending layout.
    """

    def __init__(
        self,
        identifier: str | None,
        layout: str,
        message: str,
        original_error: Exception | None = None,
        source_path: Path | None = None,
    ):
        self.layout = layout
        super().__init__(identifier, message, original_error, source_path)


class MarkupError(BuildError):
    """Front matter or body markup could not be parsed."""


class FilesystemError(BuildError):
    """Reading a source or writing an artifact failed."""
